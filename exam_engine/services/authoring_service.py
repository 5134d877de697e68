"""
Test authoring service - create, update, archive and list tests
"""
import logging
import math
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from exam_engine.config import settings
from exam_engine.database import run_with_retry
from exam_engine.exceptions import DataValidationError, ForbiddenError, NotFoundError
from exam_engine.models import Course, Test
from exam_engine.services.question_bank import CHOICE_TYPES, QuestionType
from exam_engine.utils.clock import to_naive_utc, utcnow
from exam_engine.utils.ids import parse_uuid

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "time_limit",
    "passing_score",
    "max_attempts",
    "shuffle_questions",
    "show_results",
    "allow_review",
    "require_password",
    "password",
)

UPDATABLE_FIELDS = ("title", "description", "status", "is_active", "tags")


class AuthoringService:
    """
    Service for instructor-facing test management

    Tests are archived, never deleted, so attempt history survives.
    """

    def create_test(self, db: Session, data: Dict[str, Any]) -> Test:
        """
        Create a test for a course the requester owns

        Args:
            db: Database session
            data: Test payload including course_id, instructor_id and questions

        Returns:
            The persisted test

        Raises:
            NotFoundError: course does not exist
            ForbiddenError: requester does not own the course
            DataValidationError: malformed questions, settings or dates
        """
        course_id = parse_uuid(data.get("course_id"), "course_id")
        instructor_id = parse_uuid(data.get("instructor_id"), "instructor_id")

        course = db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFoundError("Course not found")

        if course.instructor_id != instructor_id:
            raise ForbiddenError("You can only create tests for your own courses")

        start_date = to_naive_utc(data.get("start_date")) or utcnow()
        end_date = to_naive_utc(data.get("end_date"))
        self._check_window(start_date, end_date)

        test = Test(
            title=data["title"],
            description=data["description"],
            course_id=course_id,
            instructor_id=instructor_id,
            questions=self._prepare_questions(data.get("questions")),
            status=data.get("status") or "draft",
            is_active=data.get("is_active", True),
            start_date=start_date,
            end_date=end_date,
            tags=list(data.get("tags") or []),
        )
        self._apply_settings(test, data.get("settings") or {})

        db.add(test)
        db.commit()
        db.refresh(test)

        logger.info(f"Test created: {test.id} ({test.total_questions} questions) for course {course_id}")
        return test

    def update_test(self, db: Session, test_id: Any, instructor_id: Any, data: Dict[str, Any]) -> Test:
        """
        Apply a partial update; course and instructor cannot change

        Raises:
            NotFoundError, ForbiddenError, DataValidationError, ConcurrencyConflictError
        """
        test_id = parse_uuid(test_id, "test_id")
        instructor_id = parse_uuid(instructor_id, "instructor_id")

        def operation() -> Test:
            test = self._get_owned_test(db, test_id, instructor_id)

            for field in UPDATABLE_FIELDS:
                if data.get(field) is not None:
                    setattr(test, field, data[field])

            if data.get("questions") is not None:
                test.questions = self._prepare_questions(data["questions"])

            if "start_date" in data or "end_date" in data:
                start_date = to_naive_utc(data.get("start_date")) or test.start_date
                end_date = to_naive_utc(data["end_date"]) if "end_date" in data else test.end_date
                self._check_window(start_date, end_date)
                test.start_date = start_date
                test.end_date = end_date

            if data.get("settings"):
                self._apply_settings(test, data["settings"])

            test.updated_at = utcnow()
            return test

        test = run_with_retry(db, operation)
        db.refresh(test)

        logger.info(f"Test updated: {test.id}")
        return test

    def archive_test(self, db: Session, test_id: Any, instructor_id: Any) -> Test:
        """Soft-delete: archived tests stop accepting attempts but keep their history"""
        test_id = parse_uuid(test_id, "test_id")
        instructor_id = parse_uuid(instructor_id, "instructor_id")

        def operation() -> Test:
            test = self._get_owned_test(db, test_id, instructor_id)
            test.status = "archived"
            test.is_active = False
            test.updated_at = utcnow()
            return test

        test = run_with_retry(db, operation)
        db.refresh(test)

        logger.info(f"Test archived: {test.id}")
        return test

    def get_test(self, db: Session, test_id: Any) -> Test:
        test_id = parse_uuid(test_id, "test_id")
        test = db.query(Test).filter(Test.id == test_id).first()
        if not test:
            raise NotFoundError("Test not found")
        return test

    def get_owned_test(self, db: Session, test_id: Any, instructor_id: Any) -> Test:
        return self._get_owned_test(
            db, parse_uuid(test_id, "test_id"), parse_uuid(instructor_id, "instructor_id")
        )

    def list_active_tests(
        self,
        db: Session,
        course_id: Optional[Any] = None,
        page: int = 1,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Published, active tests inside their availability window, newest first

        Returns:
            Dictionary with test summaries and pagination info
        """
        now = now or utcnow()
        page = max(page, 1)
        limit = min(max(limit or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)

        query = db.query(Test).filter(
            Test.is_active.is_(True),
            Test.status == "published",
            Test.start_date <= now,
            or_(Test.end_date.is_(None), Test.end_date >= now),
        )
        if course_id is not None:
            query = query.filter(Test.course_id == parse_uuid(course_id, "course_id"))

        total = query.count()
        tests = (
            query.order_by(Test.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "tests": [self.summarize(t, now) for t in tests],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    @staticmethod
    def summarize(test: Test, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Public view of a test: no answer key, no password"""
        return {
            "id": test.id,
            "title": test.title,
            "description": test.description,
            "course_id": test.course_id,
            "instructor_id": test.instructor_id,
            "status": test.status,
            "is_active": test.is_active,
            "is_currently_active": test.is_currently_active(now),
            "is_expired": test.is_expired,
            "start_date": test.start_date,
            "end_date": test.end_date,
            "tags": list(test.tags or []),
            "settings": {
                "time_limit": test.time_limit,
                "passing_score": test.passing_score,
                "max_attempts": test.max_attempts,
                "shuffle_questions": test.shuffle_questions,
                "show_results": test.show_results,
                "allow_review": test.allow_review,
                "require_password": test.require_password,
            },
            "total_questions": test.total_questions,
            "total_points": test.total_points,
            "statistics": test.statistics,
        }

    def _get_owned_test(self, db: Session, test_id, instructor_id) -> Test:
        test = db.query(Test).filter(Test.id == test_id).first()
        if not test:
            raise NotFoundError("Test not found")
        if test.instructor_id != instructor_id:
            raise ForbiddenError("You can only manage your own tests")
        return test

    def _prepare_questions(self, questions: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Normalize authored questions into the stored JSON shape"""
        if not questions:
            raise DataValidationError("At least one question is required")

        prepared = []
        seen_ids = set()
        for position, question in enumerate(questions, start=1):
            try:
                q_type = QuestionType(question.get("type") or QuestionType.MULTIPLE_CHOICE)
            except ValueError:
                raise DataValidationError(f"Question {position}: invalid question type {question.get('type')!r}")

            points = question.get("points", 1)
            if not isinstance(points, int) or points < 1:
                raise DataValidationError(f"Question {position}: points must be at least 1")

            text = (question.get("text") or "").strip()
            if not text:
                raise DataValidationError(f"Question {position}: question text is required")

            question_id = str(question.get("id") or uuid.uuid4().hex)
            if question_id in seen_ids:
                raise DataValidationError(f"Question {position}: duplicate question id {question_id}")
            seen_ids.add(question_id)

            options = [
                {"text": opt["text"].strip(), "is_correct": bool(opt.get("is_correct", False))}
                for opt in question.get("options") or []
            ]
            correct_answer = question.get("correct_answer")

            if q_type in CHOICE_TYPES and not options:
                raise DataValidationError(f"Question {position}: options are required")
            if q_type not in CHOICE_TYPES and options:
                raise DataValidationError(f"Question {position}: options are only allowed on choice questions")
            if q_type is QuestionType.TRUE_FALSE and sum(o["is_correct"] for o in options) != 1:
                raise DataValidationError(f"Question {position}: true-false needs exactly one correct option")
            if q_type is QuestionType.FILL_IN_BLANK and not (correct_answer or "").strip():
                raise DataValidationError(f"Question {position}: correct answer is required")

            prepared.append({
                "id": question_id,
                "text": text,
                "type": q_type.value,
                "options": options,
                "correct_answer": correct_answer if q_type is QuestionType.FILL_IN_BLANK else None,
                "points": points,
                "explanation": question.get("explanation"),
                "difficulty": question.get("difficulty") or "medium",
                "tags": list(question.get("tags") or []),
            })

        return prepared

    def _apply_settings(self, test: Test, values: Dict[str, Any]) -> None:
        for field in SETTINGS_FIELDS:
            if values.get(field) is not None:
                setattr(test, field, values[field])

        if test.time_limit is not None and test.time_limit < 1:
            raise DataValidationError("Time limit must be at least 1 minute")
        if test.passing_score is not None and not 0 <= test.passing_score <= 100:
            raise DataValidationError("Passing score must be between 0 and 100")
        if test.max_attempts is not None and test.max_attempts < 1:
            raise DataValidationError("Max attempts must be at least 1")
        if test.require_password and not test.password:
            raise DataValidationError("A password is required when require_password is set")

    @staticmethod
    def _check_window(start_date: datetime, end_date: Optional[datetime]) -> None:
        if end_date is not None and start_date is not None and end_date < start_date:
            raise DataValidationError("End date cannot be before start date")


# Global instance
authoring_service = AuthoringService()
