"""
Pydantic schemas for courses and enrollments
"""
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    instructor_id: UUID


class CourseResponse(BaseModel):
    id: UUID
    title: str
    instructor_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


class EnrollmentRequest(BaseModel):
    student_id: UUID


class EnrollmentResponse(BaseModel):
    course_id: UUID
    student_id: UUID
    enrolled_at: datetime

    class Config:
        from_attributes = True
