import uuid
from datetime import timedelta

import pytest

from exam_engine.exceptions import DataValidationError, ForbiddenError, NotFoundError
from exam_engine.services.authoring_service import AuthoringService

from conftest import NOW, sample_questions


@pytest.fixture
def authoring():
    return AuthoringService()


def payload(course, instructor_id, **overrides):
    data = {
        "title": "Rivers of France",
        "description": "Where the rivers go",
        "course_id": course.id,
        "instructor_id": instructor_id,
        "questions": sample_questions(),
        "settings": {"max_attempts": 2},
    }
    data.update(overrides)
    return data


def test_create_normalizes_questions(db, authoring, course, instructor_id):
    questions = [
        {"text": "  Name the longest river  ", "type": "fill-in-blank", "correct_answer": "Loire", "points": 2},
        {"text": "Essay", "type": "essay", "correct_answer": "ignored"},
    ]

    test = authoring.create_test(db, payload(course, instructor_id, questions=questions))

    stored = test.questions
    assert stored[0]["text"] == "Name the longest river"
    assert stored[0]["options"] == []
    assert stored[0]["difficulty"] == "medium"
    assert len(stored[0]["id"]) == 32
    assert stored[1]["correct_answer"] is None
    assert stored[1]["points"] == 1
    assert test.total_points == 3
    assert test.max_attempts == 2
    assert test.passing_score == 70
    assert test.status == "draft"
    assert test.version == 1


@pytest.mark.parametrize(
    "questions",
    [
        [],
        [{"id": "a", "text": "x", "type": "essay"}, {"id": "a", "text": "y", "type": "essay"}],
        [{"text": "x", "type": "essay", "points": 0}],
        [{"text": "x", "type": "ranking"}],
        [{"text": " ", "type": "essay"}],
        [{"text": "x", "type": "true-false", "options": [{"text": "T"}, {"text": "F"}]}],
    ],
)
def test_create_rejects_bad_questions(db, authoring, course, instructor_id, questions):
    with pytest.raises(DataValidationError):
        authoring.create_test(db, payload(course, instructor_id, questions=questions))


def test_create_requires_password_when_protected(db, authoring, course, instructor_id):
    with pytest.raises(DataValidationError):
        authoring.create_test(
            db, payload(course, instructor_id, settings={"require_password": True})
        )


def test_create_checks_course(db, authoring, course, instructor_id):
    with pytest.raises(ForbiddenError):
        authoring.create_test(db, payload(course, uuid.uuid4()))

    missing = payload(course, instructor_id)
    missing["course_id"] = uuid.uuid4()
    with pytest.raises(NotFoundError):
        authoring.create_test(db, missing)


def test_update_keeps_owner_and_bumps_version(db, authoring, make_test, instructor_id):
    test = make_test()

    updated = authoring.update_test(
        db,
        test.id,
        instructor_id,
        {"title": "Renamed", "end_date": NOW + timedelta(days=7), "settings": {"passing_score": 90}},
    )

    assert updated.title == "Renamed"
    assert updated.passing_score == 90
    assert updated.end_date == NOW + timedelta(days=7)
    assert updated.instructor_id == instructor_id
    assert updated.version == 2


def test_update_rejects_window_ending_before_start(db, authoring, make_test, instructor_id):
    test = make_test()

    with pytest.raises(DataValidationError):
        authoring.update_test(db, test.id, instructor_id, {"end_date": NOW - timedelta(days=30)})


def test_archive_is_soft(db, authoring, make_test, instructor_id):
    test = make_test()

    with pytest.raises(ForbiddenError):
        authoring.archive_test(db, test.id, uuid.uuid4())

    archived = authoring.archive_test(db, test.id, instructor_id)

    assert archived.status == "archived"
    assert archived.is_active is False
    assert authoring.get_test(db, test.id).id == test.id


def test_list_active_tests_paginates(db, authoring, make_test):
    for i in range(5):
        make_test(title=f"Published {i}")
    make_test(title="Expired", end_date=NOW - timedelta(hours=1))

    first = authoring.list_active_tests(db, page=1, limit=2, now=NOW)
    last = authoring.list_active_tests(db, page=3, limit=2, now=NOW)

    assert first["pagination"] == {"page": 1, "limit": 2, "total": 5, "pages": 3}
    assert len(first["tests"]) == 2
    assert len(last["tests"]) == 1
    assert all(t["is_currently_active"] for t in first["tests"])
