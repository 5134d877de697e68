import os
import tempfile
import uuid
from datetime import datetime, timedelta

_db_dir = tempfile.mkdtemp(prefix="exam-engine-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_db_dir, 'exam_engine.db')}")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("RATE_LIMIT_PER_HOUR", "100000")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from exam_engine import models
from exam_engine.database import Base, SessionLocal, engine
from exam_engine.main import app
from exam_engine.utils.rate_limiter import rate_limiter


NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def instructor_id():
    return uuid.uuid4()


@pytest.fixture
def student_id():
    return uuid.uuid4()


@pytest.fixture
def course(db, instructor_id, student_id):
    course = models.Course(title="Geography 101", instructor_id=instructor_id)
    course.enrollments.append(models.Enrollment(student_id=student_id))
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def sample_questions():
    return [
        {
            "id": "q1",
            "text": "Capital of France?",
            "type": "multiple-choice",
            "options": [
                {"text": "Paris", "is_correct": True},
                {"text": "Lyon", "is_correct": False},
            ],
            "points": 1,
        },
        {
            "id": "q2",
            "text": "The Loire flows into the Mediterranean.",
            "type": "true-false",
            "options": [
                {"text": "True", "is_correct": False},
                {"text": "False", "is_correct": True},
            ],
            "points": 1,
        },
    ]


@pytest.fixture
def make_test(db, course, instructor_id):
    """Persist a published test on the enrolled course"""

    def _make(questions=None, **overrides):
        values = {
            "title": "Geography test",
            "description": "Capitals and rivers of France",
            "course_id": course.id,
            "instructor_id": instructor_id,
            "questions": questions if questions is not None else sample_questions(),
            "status": "published",
            "is_active": True,
            "start_date": NOW - timedelta(days=1),
            "max_attempts": 3,
            "passing_score": 50,
            "shuffle_questions": False,
        }
        values.update(overrides)
        test = models.Test(**values)
        db.add(test)
        db.commit()
        db.refresh(test)
        return test

    return _make
