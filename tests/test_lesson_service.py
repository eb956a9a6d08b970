from __future__ import annotations

import uuid

import pytest

from app.core.errors import NotFoundError
from app.schemas.lesson.lesson_schema import LessonDetail
from app.services.lesson_service import LessonService
from app.services.submission_service import SubmissionService
from tests.utils import answers_for, create_lesson, create_user, new_submission_id


@pytest.fixture()
def user(db_session):
    return create_user(db_session, username="reader", email="reader@example.com")


def test_list_lessons_orders_active_lessons(db_session):
    create_lesson(db_session, title="Second", order_index=2)
    create_lesson(db_session, title="First", order_index=1)
    create_lesson(db_session, title="Archived", order_index=0, is_active=False)

    lessons = LessonService(db_session).list_lessons()

    assert [lesson["title"] for lesson in lessons] == ["First", "Second"]
    assert all(lesson["attempts_count"] == 0 for lesson in lessons)
    assert all(lesson["is_completed"] is False for lesson in lessons)


def test_list_lessons_merges_user_progress(db_session, user):
    done = create_lesson(db_session, title="Done", order_index=1)
    create_lesson(db_session, title="Untouched", order_index=2)
    SubmissionService(db_session, user).submit(done.id, new_submission_id(), answers_for(done))

    lessons = LessonService(db_session, user=user).list_lessons()

    by_title = {lesson["title"]: lesson for lesson in lessons}
    assert by_title["Done"]["is_completed"] is True
    assert by_title["Done"]["best_score"] == 100
    assert by_title["Done"]["attempts_count"] == 1
    assert by_title["Untouched"]["is_completed"] is False
    assert by_title["Untouched"]["attempts_count"] == 0
    assert by_title["Untouched"]["completed_at"] is None


def test_lesson_detail_never_exposes_correct_flags(db_session):
    lesson = create_lesson(db_session)
    detail = LessonService(db_session).get_lesson(lesson.id)

    assert len(detail["problems"]) == 3
    for problem in detail["problems"]:
        for option in problem["options"]:
            assert "is_correct" not in option

    dumped = LessonDetail.model_validate(detail).model_dump()
    assert "is_correct" not in str(dumped)


def test_lesson_detail_problems_are_ordered(db_session):
    lesson = create_lesson(db_session)
    detail = LessonService(db_session).get_lesson(lesson.id)
    assert [p["question"] for p in detail["problems"]] == ["2 + 2 = ?", "3 x 3 = ?", "10 - 7 = ?"]


def test_unknown_or_inactive_lesson_is_not_found(db_session):
    hidden = create_lesson(db_session, is_active=False)
    service = LessonService(db_session)
    with pytest.raises(NotFoundError):
        service.get_lesson(uuid.uuid4())
    with pytest.raises(NotFoundError):
        service.get_lesson(hidden.id)


def test_lesson_stats(db_session, user):
    lesson = create_lesson(db_session)
    other = create_user(db_session, username="other", email="other@example.com")
    SubmissionService(db_session, user).submit(lesson.id, new_submission_id(), answers_for(lesson))
    SubmissionService(db_session, other).submit(lesson.id, new_submission_id(), answers_for(lesson, correct=1))
    SubmissionService(db_session, other).submit(lesson.id, new_submission_id(), answers_for(lesson, correct=2))

    stats = LessonService(db_session).get_lesson_stats(lesson.id)

    assert stats["total_problems"] == 3
    assert stats["total_learners"] == 2
    assert stats["completions"] == 1
    assert stats["completion_rate"] == 50
    assert stats["total_attempts"] == 3
    assert stats["highest_score"] == 100
    assert stats["lowest_score"] == 67
    assert stats["average_score"] == pytest.approx(83.5)


def test_lesson_stats_without_learners(db_session):
    lesson = create_lesson(db_session)
    stats = LessonService(db_session).get_lesson_stats(lesson.id)
    assert stats["total_learners"] == 0
    assert stats["completion_rate"] == 0
    assert stats["average_score"] == 0


def test_user_attempts_newest_first(db_session, user):
    lesson = create_lesson(db_session)
    service = SubmissionService(db_session, user)
    first_key, second_key = new_submission_id(), new_submission_id()
    service.submit(lesson.id, first_key, answers_for(lesson, correct=0))
    service.submit(lesson.id, second_key, answers_for(lesson))

    attempts = LessonService(db_session, user=user).get_user_attempts(lesson.id)
    assert [attempt.submission_id for attempt in attempts] == [second_key, first_key]


def test_completion_rate_rounds_half_up(db_session):
    lesson = create_lesson(db_session)
    for index in range(8):
        learner = create_user(db_session, username=f"learner{index}", email=f"learner{index}@example.com")
        correct = None if index == 0 else 0
        SubmissionService(db_session, learner).submit(
            lesson.id, new_submission_id(), answers_for(lesson, correct=correct)
        )

    stats = LessonService(db_session).get_lesson_stats(lesson.id)
    assert stats["total_learners"] == 8
    assert stats["completions"] == 1
    assert stats["completion_rate"] == 13
