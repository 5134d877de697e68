"""
Pydantic schemas for attempt requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from exam_engine.schemas.test import TestStatistics


class AttemptStartRequest(BaseModel):
    """Schema for starting an attempt"""
    student_id: UUID
    password: Optional[str] = None


class SanitizedOption(BaseModel):
    text: str


class SanitizedQuestion(BaseModel):
    """Question as delivered to a student: no correct flags, no answer key"""
    id: str
    text: str
    type: str
    options: List[SanitizedOption]
    points: int
    difficulty: str
    tags: List[str]


class AttemptStartResponse(BaseModel):
    """Response after an attempt is started"""
    test_id: UUID
    attempt_id: UUID
    attempt_number: int
    title: str
    time_limit: int
    started_at: datetime
    questions: List[SanitizedQuestion]
    total_questions: int
    total_points: int


class AnswerSubmission(BaseModel):
    """One submitted answer; selected_options for choice questions, text_answer otherwise"""
    question_id: str
    selected_options: List[int] = []
    text_answer: Optional[str] = None


class AttemptSubmitRequest(BaseModel):
    """Schema for submitting an attempt"""
    student_id: UUID
    answers: List[AnswerSubmission]
    time_spent: int = Field(..., ge=0, description="Minutes spent on the attempt")


class AnswerRecord(BaseModel):
    """Graded answer"""
    question_id: str
    selected_options: List[int]
    text_answer: str
    is_correct: bool
    points_earned: int


class AttemptResult(BaseModel):
    """Response after submission"""
    attempt_id: UUID
    score: int
    max_score: int
    percentage: int
    passed: bool
    time_spent: int
    answers: Optional[List[AnswerRecord]] = None  # only when the test shows results


class AttemptView(BaseModel):
    attempt_id: UUID
    attempt_number: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    answers: Optional[List[AnswerRecord]] = None
    score: int
    max_score: int
    percentage: int
    passed: bool
    time_spent: int


class AttemptResults(BaseModel):
    """A student's attempts on one test"""
    attempts: List[AttemptView]
    best_attempt: Optional[AttemptView] = None
    test_statistics: TestStatistics
