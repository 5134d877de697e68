"""
Pydantic schemas for test authoring requests and responses
"""
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from exam_engine.services.question_bank import CHOICE_TYPES, QuestionType


class OptionSchema(BaseModel):
    """Answer option of a choice question"""
    text: str = Field(..., min_length=1)
    is_correct: bool = False


class QuestionCreate(BaseModel):
    """Authored question, answer key included"""
    id: Optional[str] = Field(None, max_length=64, description="Stable id, generated if omitted")
    text: str = Field(..., min_length=1, description="Question prompt")
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: List[OptionSchema] = []
    correct_answer: Optional[str] = None  # fill-in-blank only
    points: int = Field(1, ge=1)
    explanation: Optional[str] = None
    difficulty: str = Field("medium", pattern="^(easy|medium|hard)$")
    tags: List[str] = []

    @model_validator(mode="after")
    def check_answer_key(self):
        if self.type in CHOICE_TYPES and not self.options:
            raise ValueError("options are required for choice questions")
        if self.type not in CHOICE_TYPES and self.options:
            raise ValueError("options are only allowed on choice questions")
        if self.type == QuestionType.TRUE_FALSE and sum(o.is_correct for o in self.options) != 1:
            raise ValueError("true-false questions need exactly one correct option")
        if self.type == QuestionType.FILL_IN_BLANK and not (self.correct_answer or "").strip():
            raise ValueError("correct_answer is required for fill-in-blank questions")
        return self


class TestSettingsSchema(BaseModel):
    """Attempt rules of a test"""
    time_limit: int = Field(60, ge=1, description="Minutes")
    passing_score: int = Field(70, ge=0, le=100, description="Percentage needed to pass")
    max_attempts: int = Field(3, ge=1)
    shuffle_questions: bool = True
    show_results: bool = True
    allow_review: bool = True
    require_password: bool = False
    password: Optional[str] = Field(None, max_length=128)

    @model_validator(mode="after")
    def check_password(self):
        if self.require_password and not self.password:
            raise ValueError("password is required when require_password is set")
        return self


class TestSettingsUpdate(BaseModel):
    """Partial settings update"""
    time_limit: Optional[int] = Field(None, ge=1)
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    max_attempts: Optional[int] = Field(None, ge=1)
    shuffle_questions: Optional[bool] = None
    show_results: Optional[bool] = None
    allow_review: Optional[bool] = None
    require_password: Optional[bool] = None
    password: Optional[str] = Field(None, max_length=128)


class TestCreate(BaseModel):
    """Schema for creating a test"""
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    course_id: UUID
    instructor_id: UUID
    questions: List[QuestionCreate] = Field(..., min_length=1)
    settings: TestSettingsSchema = TestSettingsSchema()
    status: str = Field("draft", pattern="^(draft|published|archived)$")
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: List[str] = []

    @model_validator(mode="after")
    def check_question_ids(self):
        ids = [q.id for q in self.questions if q.id]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique within a test")
        return self


class TestUpdate(BaseModel):
    """Schema for a partial test update; course and instructor are fixed"""
    instructor_id: UUID
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    questions: Optional[List[QuestionCreate]] = Field(None, min_length=1)
    settings: Optional[TestSettingsUpdate] = None
    status: Optional[str] = Field(None, pattern="^(draft|published|archived)$")
    is_active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: Optional[List[str]] = None


class TestSettingsView(BaseModel):
    time_limit: int
    passing_score: int
    max_attempts: int
    shuffle_questions: bool
    show_results: bool
    allow_review: bool
    require_password: bool


class TestStatistics(BaseModel):
    """Rollups recomputed on every attempt write"""
    total_attempts: int
    average_score: int
    pass_rate: int
    average_time: int


class TestSummary(BaseModel):
    """Public view of a test, without answer key or password"""
    id: UUID
    title: str
    description: str
    course_id: UUID
    instructor_id: UUID
    status: str
    is_active: bool
    is_currently_active: bool
    is_expired: bool
    start_date: datetime
    end_date: Optional[datetime] = None
    tags: List[str]
    settings: TestSettingsView
    total_questions: int
    total_points: int
    statistics: TestStatistics


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TestList(BaseModel):
    tests: List[TestSummary]
    pagination: Pagination
