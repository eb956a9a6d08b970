"""Grading and progress engine for lesson submissions.

A submission goes through five ordered steps:

1. idempotency check on the client-supplied ``submission_id``;
2. resolution of the active lesson;
3. loading of its problems together with the correct options;
4. grading against the *full* problem set;
5. a single transaction that appends the attempt, merges the progress row and
   updates the user's XP and streak.

A replayed key short-circuits at step 1 and returns the stored result with the
user's current aggregates. Nothing is re-graded or written.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, UnprocessableError
from app.crud import lesson_crud, progress_crud, user_crud
from app.db.session import atomic
from app.models.lesson.lesson_model import Problem
from app.models.progress.lesson_attempt_model import LessonAttempt
from app.models.user.user_model import User
from app.services.profile_service import ProfileService
from app.utils.ids import canonical_id, parse_submission_id

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(slots=True)
class GradingResult:
    correct_answers: int
    total_problems: int
    score: int


def _answer_fields(answer: Any) -> tuple[Any, Any]:
    if isinstance(answer, Mapping):
        return answer.get("problem_id"), answer.get("selected_option_id")
    return getattr(answer, "problem_id", None), getattr(answer, "selected_option_id", None)


def index_answers(answers: Iterable[Any]) -> dict[str, str | None]:
    """Map canonical problem id -> canonical selected option id.

    When a problem appears several times the last entry wins.
    """
    selections: dict[str, str | None] = {}
    for answer in answers or ():
        problem_id, option_id = _answer_fields(answer)
        key = canonical_id(problem_id)
        if key is None:
            continue
        selections[key] = canonical_id(option_id)
    return selections


def grade_answers(problems: Sequence[Problem], answers: Iterable[Any]) -> GradingResult:
    """Grade ``answers`` against every problem of the lesson.

    A problem counts as correct only when the selected option belongs to that
    problem and is flagged correct. Missing, null or unknown selections are
    simply wrong.
    """
    selections = index_answers(answers)
    correct = 0
    for problem in problems:
        selected = selections.get(canonical_id(problem.id))
        if selected is None:
            continue
        correct_ids = {canonical_id(option.id) for option in problem.options if option.is_correct}
        if selected in correct_ids:
            correct += 1

    total = len(problems)
    score = round_half_up(100 * correct / total) if total else 0
    return GradingResult(correct_answers=correct, total_problems=total, score=score)


def is_passing(score: float) -> bool:
    return score >= settings.COMPLETION_THRESHOLD


def calculate_xp(xp_reward: int, is_completed: bool) -> int:
    """Full reward on completion, partial credit otherwise."""
    if is_completed:
        return xp_reward
    return round_half_up(xp_reward * settings.PARTIAL_XP_RATIO)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite relit les dates sans fuseau.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _serialize_answers(answers: Iterable[Any]) -> list[dict]:
    serialized = []
    for answer in answers or ():
        if hasattr(answer, "model_dump"):
            serialized.append(answer.model_dump())
        elif isinstance(answer, Mapping):
            serialized.append(dict(answer))
    return serialized


class SubmissionService:
    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    def submit(self, lesson_id: uuid.UUID, submission_id: str, answers: Sequence[Any]) -> dict:
        """Grade a submission once and return its result; replays are read-only."""
        submission_id = parse_submission_id(submission_id)

        # 1. Idempotence
        existing = progress_crud.get_attempt_by_submission_id(self.db, submission_id)
        if existing is not None:
            return self._replay(existing, lesson_id)

        # 2. Leçon
        lesson = lesson_crud.get_active_lesson(self.db, lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", code="LESSON_NOT_FOUND")

        # 3. Problèmes avec réponses
        problems = lesson_crud.get_problems_with_answers(self.db, lesson.id)
        if not problems:
            raise UnprocessableError("Lesson has no problems to grade", code="NO_PROBLEMS_FOUND")

        # 4. Notation
        grading = grade_answers(problems, answers)
        is_completed = is_passing(grading.score)
        xp_earned = calculate_xp(lesson.xp_reward, is_completed)

        # 5. Persistance atomique
        now = datetime.now(timezone.utc)
        try:
            with atomic(self.db):
                user = user_crud.get_user_for_update(self.db, self.user.id)
                if user is None:
                    raise NotFoundError("User not found", code="USER_NOT_FOUND")

                attempt = progress_crud.add_attempt(
                    self.db,
                    submission_id=submission_id,
                    user_id=user.id,
                    lesson_id=lesson.id,
                    submitted_answers=_serialize_answers(answers),
                    score=float(grading.score),
                    correct_answers=grading.correct_answers,
                    total_problems=grading.total_problems,
                    xp_earned=xp_earned,
                    is_completed=is_completed,
                    submitted_at=now,
                )
                self.db.flush()

                _, newly_completed = progress_crud.merge_progress(
                    self.db,
                    user_id=user.id,
                    lesson_id=lesson.id,
                    score=grading.score,
                    is_completed=is_completed,
                    attempted_at=now,
                )

                user.total_xp = (user.total_xp or 0) + xp_earned
                if newly_completed:
                    user.current_streak = (user.current_streak or 0) + 1
                    user.best_streak = max(user.best_streak or 0, user.current_streak)
                user.updated_at = now
        except IntegrityError as exc:
            winner = progress_crud.get_attempt_by_submission_id(self.db, submission_id)
            if winner is not None:
                logger.info("Soumission %s déjà enregistrée par une requête concurrente.", submission_id)
                return self._replay(winner, lesson_id)
            raise ConflictError(
                "Concurrent submission for this lesson, please retry",
                code="CONCURRENT_SUBMISSION",
            ) from exc

        logger.info(
            "Soumission notée: user=%s leçon=%s score=%s xp=%s terminée=%s",
            self.user.id,
            lesson.id,
            grading.score,
            xp_earned,
            is_completed,
        )
        return self._build_result(attempt, is_duplicate=False)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _replay(self, attempt: LessonAttempt, lesson_id: uuid.UUID) -> dict:
        if attempt.user_id != self.user.id or attempt.lesson_id != lesson_id:
            raise ConflictError(
                "Submission ID already used for another lesson or user",
                code="SUBMISSION_ID_REUSED",
            )
        logger.info("Soumission %s rejouée: aucun effet appliqué.", attempt.submission_id)
        return self._build_result(attempt, is_duplicate=True)

    def _build_result(self, attempt: LessonAttempt, *, is_duplicate: bool) -> dict:
        stats = ProfileService(self.db).get_user_stats(self.user.id)
        return {
            "submission_id": attempt.submission_id,
            "lesson_id": attempt.lesson_id,
            "score": int(attempt.score),
            "xp_earned": attempt.xp_earned,
            "is_completed": attempt.is_completed,
            "correct_answers": attempt.correct_answers,
            "total_problems": attempt.total_problems,
            "current_streak": stats["current_streak"],
            "best_streak": stats["best_streak"],
            "total_xp": stats["total_xp"],
            "progress_percentage": stats["progress_percentage"],
            "is_duplicate": is_duplicate,
            "submitted_at": _as_utc(attempt.submitted_at),
        }
