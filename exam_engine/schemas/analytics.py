"""
Pydantic schemas for analytics endpoints
"""
from pydantic import BaseModel
from typing import List
from uuid import UUID

from exam_engine.schemas.test import TestStatistics


class QuestionAnalytics(BaseModel):
    """Accuracy of a single question over completed attempts"""
    question_id: str
    text: str
    type: str
    total_attempts: int
    correct_answers: int
    accuracy: float


class TestAnalytics(BaseModel):
    """Instructor view of a test's performance"""
    test_id: UUID
    title: str
    statistics: TestStatistics
    question_analytics: List[QuestionAnalytics]
