"""
Database models package
"""
from exam_engine.models.course import Course, Enrollment
from exam_engine.models.test import Test
from exam_engine.models.test_attempt import TestAttempt

__all__ = ["Course", "Enrollment", "Test", "TestAttempt"]
