"""
Course enrollment lookups used to gate test attempts
"""
import logging
from uuid import UUID

from sqlalchemy.orm import Session

from exam_engine.exceptions import NotFoundError
from exam_engine.models import Course, Enrollment

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Minimal course membership store"""

    def create_course(self, db: Session, title: str, instructor_id: UUID) -> Course:
        course = Course(title=title, instructor_id=instructor_id)
        db.add(course)
        db.commit()
        db.refresh(course)

        logger.info(f"Course created: {course.id}")
        return course

    def enroll_student(self, db: Session, course_id: UUID, student_id: UUID) -> Enrollment:
        """
        Enroll a student, returning the existing enrollment if already enrolled

        Raises:
            NotFoundError: course does not exist
        """
        course = db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFoundError("Course not found")

        enrollment = self._find(db, course_id, student_id)
        if enrollment:
            return enrollment

        enrollment = Enrollment(course_id=course_id, student_id=student_id)
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)

        logger.info(f"Student {student_id} enrolled in course {course_id}")
        return enrollment

    def is_enrolled(self, db: Session, course_id: UUID, student_id: UUID) -> bool:
        return self._find(db, course_id, student_id) is not None

    def _find(self, db: Session, course_id: UUID, student_id: UUID):
        return db.query(Enrollment).filter(
            Enrollment.course_id == course_id,
            Enrollment.student_id == student_id,
        ).first()


# Global instance
enrollment_service = EnrollmentService()
