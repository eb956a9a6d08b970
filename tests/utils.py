"""Utility helpers for test factories."""

from __future__ import annotations

import uuid
from typing import Iterable, Sequence

from app.core.security import create_access_token, get_password_hash
from app.models.lesson.lesson_model import Lesson, Problem, ProblemOption
from app.models.user.user_model import User

DEFAULT_PASSWORD = "password123"

# (question, [(option_text, is_correct), ...])
ARITHMETIC_PROBLEMS = [
    ("2 + 2 = ?", [("3", False), ("4", True), ("5", False)]),
    ("3 x 3 = ?", [("6", False), ("9", True), ("12", False)]),
    ("10 - 7 = ?", [("3", True), ("4", False), ("7", False)]),
]


def create_user(db, **kwargs) -> User:
    password = kwargs.pop("password", DEFAULT_PASSWORD)
    defaults = {
        "username": "user",
        "email": "user@example.com",
        "hashed_password": get_password_hash(password),
        "total_xp": 0,
        "current_streak": 0,
        "best_streak": 0,
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_lesson(
    db,
    *,
    title: str = "Addition basics",
    problems: Sequence[tuple[str, Iterable[tuple[str, bool]]]] | None = None,
    **kwargs,
) -> Lesson:
    defaults = {
        "title": title,
        "description": kwargs.pop("description", "Warm-up arithmetic"),
        "difficulty_level": kwargs.pop("difficulty_level", 1),
        "xp_reward": kwargs.pop("xp_reward", 10),
        "order_index": kwargs.pop("order_index", 1),
        "is_active": kwargs.pop("is_active", True),
    }
    defaults.update(kwargs)
    lesson = Lesson(**defaults)

    specs = ARITHMETIC_PROBLEMS if problems is None else problems
    for index, (question, options) in enumerate(specs):
        problem = Problem(question=question, order_index=index)
        for option_index, (text, is_correct) in enumerate(options):
            problem.options.append(
                ProblemOption(option_text=text, is_correct=is_correct, order_index=option_index)
            )
        lesson.problems.append(problem)

    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    return lesson


def answers_for(lesson: Lesson, correct: int | None = None) -> list[dict]:
    """Build a payload answering the first ``correct`` problems right and the rest wrong."""
    answers = []
    for index, problem in enumerate(lesson.problems):
        right = correct is None or index < correct
        option = next(o for o in problem.options if bool(o.is_correct) == right)
        answers.append({"problem_id": str(problem.id), "selected_option_id": str(option.id)})
    return answers


def new_submission_id() -> str:
    return str(uuid.uuid4())


def auth_headers(user: User) -> dict:
    token = create_access_token(subject=user.id, email=user.email)
    return {"Authorization": f"Bearer {token}"}
