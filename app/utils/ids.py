"""Helpers for UUID-shaped identifiers coming from URLs and request bodies."""

from __future__ import annotations

import re
import uuid
from typing import Any

from app.core.errors import ValidationError

# RFC 4122 layout, versions 1 to 5.
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_UUID4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value.strip()))


def is_valid_uuid4(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID4_RE.match(value.strip()))


def parse_resource_id(value: Any, label: str = "lesson") -> uuid.UUID:
    """Return ``value`` as a :class:`uuid.UUID` or raise a 400 validation error."""
    if not is_valid_uuid(value):
        raise ValidationError(
            f"Invalid {label} ID format. Expected GUID/UUID format.",
            details=[{"field": f"{label}_id", "message": "must be a valid UUID"}],
        )
    return uuid.UUID(value.strip())


def parse_submission_id(value: Any) -> str:
    """Validate an idempotency key and return its canonical lower-case form."""
    if not is_valid_uuid4(value):
        raise ValidationError(
            "Invalid submission ID format",
            code="INVALID_ATTEMPT_ID",
            details=[{"field": "submission_id", "message": "must be a valid UUID v4"}],
        )
    return value.strip().lower()


def canonical_id(value: Any) -> str | None:
    """Normalise an identifier for comparison; unparsable values are kept as-is."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text.lower()
