"""
Test analytics API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from exam_engine.database import get_db
from exam_engine.schemas.analytics import TestAnalytics
from exam_engine.services.authoring_service import authoring_service
from exam_engine.services.statistics_service import statistics_service
from exam_engine.utils.cache import cache_service

router = APIRouter(prefix="/api", tags=["analytics"])
logger = logging.getLogger(__name__)


@router.get("/tests/{test_id}/analytics", response_model=TestAnalytics)
async def get_test_analytics(
    test_id: UUID,
    instructor_id: UUID,
    db: Session = Depends(get_db)
):
    """
    Get analytics for a test (owning instructor only)

    Returns:
    - Total attempts, average score, pass rate, average time
    - Per-question attempts, correct answers and accuracy
    """
    test = authoring_service.get_owned_test(db, test_id, instructor_id)

    cache_key = cache_service.analytics_key(test.id, test.version)
    cached = cache_service.get(cache_key)
    if cached:
        return TestAnalytics(**cached)

    logger.info(f"Computing analytics for test {test_id}")

    analytics = {
        "test_id": str(test.id),
        "title": test.title,
        "statistics": test.statistics,
        "question_analytics": statistics_service.question_analytics(test),
    }
    cache_service.set(cache_key, analytics)

    return TestAnalytics(**analytics)
