"""
Test model - question bank, settings, attempts and rolled-up statistics
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from exam_engine.database import Base
from exam_engine.utils.clock import utcnow
import uuid


class Test(Base):
    """
    Tests table - one row per test, attempts live in test_attempts

    The version column is checked on every UPDATE, so two writers that
    loaded the same test cannot both commit attempt changes.
    """
    __tablename__ = "tests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    course_id = Column(Uuid, ForeignKey("courses.id"), nullable=False, index=True)
    instructor_id = Column(Uuid, nullable=False, index=True)
    questions = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # Full question data

    # Settings
    time_limit = Column(Integer, default=60, nullable=False)  # minutes
    passing_score = Column(Integer, default=70, nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    shuffle_questions = Column(Boolean, default=True, nullable=False)
    show_results = Column(Boolean, default=True, nullable=False)
    allow_review = Column(Boolean, default=True, nullable=False)
    require_password = Column(Boolean, default=False, nullable=False)
    password = Column(String(128))  # plaintext, compared as-is

    status = Column(String(20), default="draft", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, default=utcnow, nullable=False)
    end_date = Column(DateTime)
    tags = Column(JSON().with_variant(JSONB, "postgresql"))

    # Statistics, recomputed on every attempt write
    total_attempts = Column(Integer, default=0, nullable=False)
    average_score = Column(Integer, default=0, nullable=False)
    pass_rate = Column(Integer, default=0, nullable=False)
    average_time = Column(Integer, default=0, nullable=False)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    course = relationship("Course", back_populates="tests")
    attempts = relationship(
        "TestAttempt",
        back_populates="test",
        order_by="TestAttempt.started_at",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_questions(self) -> int:
        return len(self.questions or [])

    @property
    def total_points(self) -> int:
        return sum(q.get("points", 1) for q in self.questions or [])

    @property
    def is_expired(self) -> bool:
        return self.end_date is not None and utcnow() > self.end_date

    def is_currently_active(self, now: Optional[datetime] = None) -> bool:
        """Published, switched on, and inside the availability window"""
        now = now or utcnow()
        return (
            bool(self.is_active)
            and self.status == "published"
            and now >= self.start_date
            and (self.end_date is None or now <= self.end_date)
        )

    @property
    def statistics(self) -> Dict[str, Any]:
        return {
            "total_attempts": self.total_attempts,
            "average_score": self.average_score,
            "pass_rate": self.pass_rate,
            "average_time": self.average_time,
        }

    def __repr__(self):
        return f"<Test(id={self.id}, title={self.title}, status={self.status})>"
