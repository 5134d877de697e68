"""
Test authoring and attempt API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from exam_engine.database import get_db
from exam_engine.schemas.attempt import (
    AttemptResult,
    AttemptResults,
    AttemptStartRequest,
    AttemptStartResponse,
    AttemptSubmitRequest,
)
from exam_engine.schemas.test import TestCreate, TestList, TestSummary, TestUpdate
from exam_engine.services.attempt_service import attempt_service
from exam_engine.services.authoring_service import authoring_service

router = APIRouter(prefix="/api/tests", tags=["tests"])
logger = logging.getLogger(__name__)


@router.get("", response_model=TestList)
async def list_tests(
    course_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """
    List tests that can be attempted right now

    - Published and active only
    - Inside the start/end window
    - Newest first, paginated
    """
    return authoring_service.list_active_tests(db, course_id=course_id, page=page, limit=limit)


@router.post("", response_model=TestSummary, status_code=201)
async def create_test(request: TestCreate, db: Session = Depends(get_db)):
    """
    Create a test for a course owned by the instructor

    Question ids are generated when omitted.
    """
    test = authoring_service.create_test(db, request.model_dump())
    return authoring_service.summarize(test)


@router.get("/{test_id}", response_model=TestSummary)
async def get_test(test_id: UUID, db: Session = Depends(get_db)):
    """Public test summary, without questions or answer key"""
    test = authoring_service.get_test(db, test_id)
    return authoring_service.summarize(test)


@router.put("/{test_id}", response_model=TestSummary)
async def update_test(test_id: UUID, request: TestUpdate, db: Session = Depends(get_db)):
    """Partially update a test; only its instructor may do so"""
    data = request.model_dump(exclude_unset=True)
    instructor_id = data.pop("instructor_id")
    test = authoring_service.update_test(db, test_id, instructor_id, data)
    return authoring_service.summarize(test)


@router.delete("/{test_id}", response_model=TestSummary)
async def archive_test(test_id: UUID, instructor_id: UUID, db: Session = Depends(get_db)):
    """Archive a test. Attempts and statistics are kept."""
    test = authoring_service.archive_test(db, test_id, instructor_id)
    return authoring_service.summarize(test)


@router.post("/{test_id}/start", response_model=AttemptStartResponse)
async def start_attempt(
    test_id: UUID,
    payload: AttemptStartRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Start an attempt

    - Test must be published and inside its window
    - Student must be enrolled in the owning course
    - Password checked when the test requires one
    - Attempt limit enforced, one open attempt at a time
    - Questions come back without correct answers, shuffled if enabled
    """
    try:
        return attempt_service.start_attempt(
            db,
            test_id,
            payload.student_id,
            password=payload.password,
            ip_address=request.client.host if request.client else "",
            user_agent=request.headers.get("user-agent", ""),
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to start attempt on test {test_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to start attempt")


@router.post("/{test_id}/submit", response_model=AttemptResult, response_model_exclude_none=True)
async def submit_attempt(
    test_id: UUID, payload: AttemptSubmitRequest, db: Session = Depends(get_db)
):
    """
    Submit and grade the open attempt

    Grading:
    - Multiple choice: selected set must equal the correct set
    - True/false: single correct selection
    - Fill-in-blank: case-insensitive, trimmed match
    - Essay: 0 points until graded manually

    Per-answer results are returned only when the test shows results.
    """
    try:
        return attempt_service.submit_attempt(
            db,
            test_id,
            payload.student_id,
            answers=[answer.model_dump() for answer in payload.answers],
            time_spent=payload.time_spent,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to submit attempt on test {test_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to submit attempt")


@router.get("/{test_id}/results", response_model=AttemptResults)
async def get_results(test_id: UUID, student_id: UUID, db: Session = Depends(get_db)):
    """A student's attempts, best attempt, and the test's statistics"""
    return attempt_service.get_results(db, test_id, student_id)
