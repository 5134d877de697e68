"""
Statistics service for test-level rollups and question analytics
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from exam_engine.models import Test
from exam_engine.utils.clock import utcnow

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives"""
    return int(math.floor(value + 0.5))


class StatisticsService:
    """
    Recomputes a test's statistics from its full attempt list

    Values are derived from scratch on every call, never updated
    incrementally. Call this inside the same transaction as the attempt
    change so both commit together.
    """

    def recompute(self, test: Test, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Recompute statistics on the test row in place

        Args:
            test: Test whose attempts changed
            now: Timestamp written to updated_at

        Returns:
            The new statistics dictionary
        """
        attempts = list(test.attempts)
        completed = [a for a in attempts if a.completed_at is not None]

        test.total_attempts = len(attempts)

        if completed:
            passed = sum(1 for a in completed if a.passed)
            test.pass_rate = round_half_up(passed / len(completed) * 100)

            # Pooled ratio, not a mean of per-attempt percentages
            total_score = sum(a.score for a in completed)
            total_max_score = sum(a.max_score for a in completed)
            if total_max_score > 0:
                test.average_score = round_half_up(total_score / total_max_score * 100)

            total_time = sum(a.time_spent for a in completed)
            test.average_time = round_half_up(total_time / len(completed))
        else:
            test.pass_rate = 0

        # Always dirty the row so its version is bumped
        test.updated_at = now or utcnow()

        logger.info(
            f"Statistics recomputed for test {test.id}: attempts={test.total_attempts}, "
            f"completed={len(completed)}, pass_rate={test.pass_rate}, "
            f"average_score={test.average_score}, average_time={test.average_time}"
        )

        return test.statistics

    def question_analytics(self, test: Test) -> List[Dict[str, Any]]:
        """
        Per-question accuracy over completed attempts

        Returns:
            One entry per question in authored order
        """
        completed = [a for a in test.attempts if a.completed_at is not None]

        analytics = []
        for question in test.questions or []:
            question_id = str(question["id"])

            answered = 0
            correct = 0
            for attempt in completed:
                record = next(
                    (r for r in attempt.answers or [] if r.get("question_id") == question_id),
                    None,
                )
                if record is None:
                    continue
                answered += 1
                if record.get("is_correct"):
                    correct += 1

            analytics.append({
                "question_id": question_id,
                "text": question["text"],
                "type": question["type"],
                "total_attempts": answered,
                "correct_answers": correct,
                "accuracy": round(correct / answered * 100, 2) if answered else 0.0,
            })

        return analytics


# Global instance
statistics_service = StatisticsService()
