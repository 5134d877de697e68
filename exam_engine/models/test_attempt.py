"""
TestAttempt model - one student's pass through a test
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from exam_engine.database import Base
from exam_engine.utils.clock import utcnow
import uuid


class TestAttempt(Base):
    """
    Test attempts table - append-only, completed in place on submit
    """
    __tablename__ = "test_attempts"
    __table_args__ = (
        UniqueConstraint(
            "test_id", "student_id", "attempt_number", name="uq_attempt_test_student_number"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    test_id = Column(Uuid, ForeignKey("tests.id"), nullable=False, index=True)
    student_id = Column(Uuid, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime)
    questions = Column(JSON().with_variant(JSONB, "postgresql"), default=list)  # Snapshot graded on submit
    answers = Column(JSON().with_variant(JSONB, "postgresql"), default=list)  # Graded answer records
    score = Column(Integer, default=0, nullable=False)
    max_score = Column(Integer, default=0, nullable=False)
    percentage = Column(Integer, default=0, nullable=False)
    passed = Column(Boolean, default=False, nullable=False)
    time_spent = Column(Integer, default=0, nullable=False)  # minutes
    ip_address = Column(String(45))
    user_agent = Column(String(255))

    test = relationship("Test", back_populates="attempts")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self):
        return (
            f"<TestAttempt(student_id={self.student_id}, test_id={self.test_id}, "
            f"number={self.attempt_number}, score={self.score}/{self.max_score})>"
        )
