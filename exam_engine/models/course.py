"""
Course and Enrollment models - the enrollment lookup consumed by the attempt engine
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from exam_engine.database import Base
from exam_engine.utils.clock import utcnow
import uuid


class Course(Base):
    """
    Courses table - owner of tests, holder of enrollments
    """
    __tablename__ = "courses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(100), nullable=False)
    instructor_id = Column(Uuid, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    enrollments = relationship(
        "Enrollment", back_populates="course", cascade="all, delete-orphan"
    )
    tests = relationship("Test", back_populates="course")

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class Enrollment(Base):
    """
    Enrollments table - one row per (course, student)
    """
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("course_id", "student_id", name="uq_enrollment_course_student"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid, ForeignKey("courses.id"), nullable=False)
    student_id = Column(Uuid, nullable=False, index=True)
    enrolled_at = Column(DateTime, default=utcnow)

    course = relationship("Course", back_populates="enrollments")

    def __repr__(self):
        return f"<Enrollment(course_id={self.course_id}, student_id={self.student_id})>"
