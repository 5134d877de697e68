"""
Course and enrollment API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from exam_engine.database import get_db
from exam_engine.schemas.course import (
    CourseCreate,
    CourseResponse,
    EnrollmentRequest,
    EnrollmentResponse,
)
from exam_engine.services.enrollment_service import enrollment_service

router = APIRouter(prefix="/api/courses", tags=["courses"])
logger = logging.getLogger(__name__)


@router.post("", response_model=CourseResponse, status_code=201)
async def create_course(request: CourseCreate, db: Session = Depends(get_db)):
    """Create a course owned by the given instructor"""
    return enrollment_service.create_course(db, request.title, request.instructor_id)


@router.post("/{course_id}/enroll", response_model=EnrollmentResponse)
async def enroll_student(
    course_id: UUID, request: EnrollmentRequest, db: Session = Depends(get_db)
):
    """
    Enroll a student in a course

    Enrolling an already enrolled student returns the existing enrollment.
    """
    return enrollment_service.enroll_student(db, course_id, request.student_id)
