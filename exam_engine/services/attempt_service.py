"""
Attempt lifecycle service
Start: eligibility checks, attempt creation, sanitized questions
Submit: grading, scoring, statistics recompute
"""
import logging
import random
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from exam_engine.database import run_with_retry
from exam_engine.exceptions import (
    AttemptInProgressError,
    DataValidationError,
    ForbiddenError,
    InactiveTestError,
    InvalidPasswordError,
    MaxAttemptsExceededError,
    NoActiveAttemptError,
    NotFoundError,
)
from exam_engine.models import Course, Test, TestAttempt
from exam_engine.services.enrollment_service import EnrollmentService, enrollment_service
from exam_engine.services.grading_service import GradingService, grading_service
from exam_engine.services.question_bank import QuestionBank
from exam_engine.services.statistics_service import (
    StatisticsService,
    round_half_up,
    statistics_service,
)
from exam_engine.utils.clock import utcnow
from exam_engine.utils.ids import parse_uuid

logger = logging.getLogger(__name__)


class AttemptService:
    """
    Service driving a student's attempt from start to completion

    A student may hold at most one unfinished attempt per test; starting
    another while one is open is rejected. Every write goes through
    run_with_retry so the attempt change and the statistics recompute
    commit together, and a concurrent writer forces a clean retry.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
        grader: GradingService = grading_service,
        statistics: StatisticsService = statistics_service,
        enrollments: EnrollmentService = enrollment_service,
    ):
        self.rng = rng or random.Random()
        self.clock = clock
        self.grader = grader
        self.statistics = statistics
        self.enrollments = enrollments

    def start_attempt(
        self,
        db: Session,
        test_id: Any,
        student_id: Any,
        password: Optional[str] = None,
        ip_address: str = "",
        user_agent: str = "",
    ) -> Dict[str, Any]:
        """
        Start a new attempt and return the questions to display

        Args:
            db: Database session
            test_id: Test UUID
            student_id: Student UUID
            password: Test password, checked only when the test requires one
            ip_address: Client address recorded on the attempt
            user_agent: Client agent string recorded on the attempt

        Returns:
            Dictionary with attempt id, test info and sanitized questions

        Raises:
            NotFoundError, InactiveTestError, ForbiddenError, InvalidPasswordError,
            MaxAttemptsExceededError, AttemptInProgressError, ConcurrencyConflictError
        """
        test_id = parse_uuid(test_id, "test_id")
        student_id = parse_uuid(student_id, "student_id")

        def operation() -> Dict[str, Any]:
            now = self.clock()
            test = self._get_test(db, test_id)

            if not test.is_currently_active(now):
                raise InactiveTestError("Test is not currently available")

            course = db.query(Course).filter(Course.id == test.course_id).first()
            if not course:
                raise NotFoundError("Course not found")

            if not self.enrollments.is_enrolled(db, course.id, student_id):
                raise ForbiddenError("You must be enrolled in the course to take this test")

            # Plaintext comparison, the stored password is not hashed
            if test.require_password and password != test.password:
                raise InvalidPasswordError("Incorrect test password")

            previous = self._student_attempts(test, student_id)
            if len(previous) >= test.max_attempts:
                raise MaxAttemptsExceededError(
                    f"Maximum attempts ({test.max_attempts}) reached for this test"
                )

            open_attempt = self._open_attempt(previous)
            if open_attempt is not None:
                raise AttemptInProgressError(
                    "An attempt is already in progress for this test",
                    extra={"attempt_id": str(open_attempt.id)},
                )

            bank = QuestionBank(test.questions)
            attempt = TestAttempt(
                id=uuid.uuid4(),
                student_id=student_id,
                attempt_number=max((a.attempt_number for a in previous), default=0) + 1,
                started_at=now,
                questions=list(bank),
                answers=[],
                score=0,
                max_score=bank.total_points,
                percentage=0,
                passed=False,
                time_spent=0,
                ip_address=(ip_address or "")[:45],
                user_agent=(user_agent or "")[:255],
            )
            test.attempts.append(attempt)
            self.statistics.recompute(test, now)

            return {
                "test_id": test.id,
                "attempt_id": attempt.id,
                "attempt_number": attempt.attempt_number,
                "title": test.title,
                "time_limit": test.time_limit,
                "started_at": now,
                "questions": bank.sanitized(self.rng, shuffle=test.shuffle_questions),
                "total_questions": len(bank),
                "total_points": bank.total_points,
            }

        result = run_with_retry(db, operation)

        logger.info(
            f"Attempt {result['attempt_id']} started: test {test_id}, student {student_id}, "
            f"number {result['attempt_number']}"
        )
        return result

    def submit_attempt(
        self,
        db: Session,
        test_id: Any,
        student_id: Any,
        answers: Iterable[Dict[str, Any]],
        time_spent: int,
    ) -> Dict[str, Any]:
        """
        Grade and complete the student's open attempt

        Args:
            db: Database session
            test_id: Test UUID
            student_id: Student UUID
            answers: Submitted answers [{question_id, selected_options, text_answer}]
            time_spent: Minutes reported by the client

        Returns:
            Dictionary with score, max_score, percentage, passed, time_spent and,
            when the test shows results, the graded answers

        Raises:
            NotFoundError, DataValidationError, NoActiveAttemptError, ConcurrencyConflictError
        """
        test_id = parse_uuid(test_id, "test_id")
        student_id = parse_uuid(student_id, "student_id")

        if time_spent is None or time_spent < 0:
            raise DataValidationError("Time spent must be a positive number")

        answers = list(answers)

        def operation() -> Dict[str, Any]:
            now = self.clock()
            test = self._get_test(db, test_id)

            attempt = self._open_attempt(self._student_attempts(test, student_id))
            if attempt is None:
                raise NoActiveAttemptError("No active attempt found for this student")

            records, score = self.grader.grade_answers(QuestionBank(attempt.questions), answers)

            attempt.answers = records
            attempt.score = score
            attempt.percentage = (
                round_half_up(score / attempt.max_score * 100) if attempt.max_score else 0
            )
            attempt.passed = attempt.percentage >= test.passing_score
            attempt.completed_at = now
            attempt.time_spent = time_spent

            self.statistics.recompute(test, now)

            result = {
                "attempt_id": attempt.id,
                "score": attempt.score,
                "max_score": attempt.max_score,
                "percentage": attempt.percentage,
                "passed": attempt.passed,
                "time_spent": attempt.time_spent,
            }
            if test.show_results:
                result["answers"] = records
            return result

        result = run_with_retry(db, operation)

        logger.info(
            f"Attempt {result['attempt_id']} submitted: test {test_id}, student {student_id}, "
            f"score {result['score']}/{result['max_score']} ({result['percentage']}%)"
        )
        return result

    def get_best_attempt(self, test: Test, student_id: Any) -> Optional[TestAttempt]:
        """Completed attempt with the highest percentage; earliest wins ties"""
        student_id = parse_uuid(student_id, "student_id")
        completed = [a for a in self._student_attempts(test, student_id) if a.is_completed]
        if not completed:
            return None
        return max(completed, key=lambda a: a.percentage)

    def get_results(self, db: Session, test_id: Any, student_id: Any) -> Dict[str, Any]:
        """
        All of a student's attempts on a test, the best one, and test statistics

        Raises:
            NotFoundError: test missing or no attempts by this student
        """
        test_id = parse_uuid(test_id, "test_id")
        student_id = parse_uuid(student_id, "student_id")

        test = self._get_test(db, test_id)
        attempts = self._student_attempts(test, student_id)
        if not attempts:
            raise NotFoundError("No attempts found for this test")

        best = self.get_best_attempt(test, student_id)

        return {
            "attempts": [self.serialize_attempt(a, test.allow_review) for a in attempts],
            "best_attempt": self.serialize_attempt(best, test.allow_review) if best else None,
            "test_statistics": test.statistics,
        }

    @staticmethod
    def serialize_attempt(attempt: TestAttempt, include_answers: bool = True) -> Dict[str, Any]:
        return {
            "attempt_id": attempt.id,
            "attempt_number": attempt.attempt_number,
            "started_at": attempt.started_at,
            "completed_at": attempt.completed_at,
            "answers": list(attempt.answers or []) if include_answers else None,
            "score": attempt.score,
            "max_score": attempt.max_score,
            "percentage": attempt.percentage,
            "passed": attempt.passed,
            "time_spent": attempt.time_spent,
        }

    def _get_test(self, db: Session, test_id: UUID) -> Test:
        test = db.query(Test).filter(Test.id == test_id).first()
        if not test:
            raise NotFoundError("Test not found")
        return test

    @staticmethod
    def _student_attempts(test: Test, student_id: UUID) -> List[TestAttempt]:
        return sorted(
            (a for a in test.attempts if a.student_id == student_id),
            key=lambda a: a.attempt_number,
        )

    @staticmethod
    def _open_attempt(attempts: List[TestAttempt]) -> Optional[TestAttempt]:
        return next((a for a in attempts if a.completed_at is None), None)


# Global instance
attempt_service = AttemptService()
