"""
Test grading service
Choice questions: exact match against the flagged options
Fill-in-blank: normalized text match
Essay: left for manual grading
"""
import logging
from typing import Any, Dict, Iterable, List, Tuple

from exam_engine.services.question_bank import QuestionBank, QuestionType

logger = logging.getLogger(__name__)


class GradingService:
    """
    Service for grading test submissions

    Strategy:
    - Multiple choice: selected set must equal the correct set (no partial credit)
    - True/false: exactly one selection, and it must be the correct option
    - Fill-in-blank: case-insensitive, whitespace-trimmed equality
    - Essay: never auto-graded, always 0 points

    Grading is pure. Nothing is persisted here; the caller stores the records.
    """

    def grade_answers(
        self,
        bank: QuestionBank,
        answers: Iterable[Dict[str, Any]],
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Grade a complete submission

        Args:
            bank: Question bank of the test being attempted
            answers: Submitted answers [{question_id, selected_options, text_answer}]

        Returns:
            Tuple of (answer records, total score)
        """
        records = []
        total_score = 0
        seen = set()

        for answer in answers:
            question_id = str(answer.get("question_id"))

            question = bank.get(question_id)
            if question is None:
                logger.debug(f"Dropping answer for unknown question {question_id}")
                continue

            # Only the first answer per question counts
            if question_id in seen:
                logger.debug(f"Dropping duplicate answer for question {question_id}")
                continue
            seen.add(question_id)

            record = self.grade_answer(question, answer)
            total_score += record["points_earned"]
            records.append(record)

        logger.info(f"Submission graded: {total_score}/{bank.total_points} over {len(records)} answers")

        return records, total_score

    def grade_answer(self, question: Dict[str, Any], answer: Dict[str, Any]) -> Dict[str, Any]:
        """
        Grade one answer against its question

        Args:
            question: Question dictionary
            answer: Submitted answer dictionary

        Returns:
            Answer record with is_correct and points_earned
        """
        selected = list(answer.get("selected_options") or [])
        text_answer = answer.get("text_answer")
        q_type = QuestionType(question["type"])

        if q_type is QuestionType.MULTIPLE_CHOICE:
            is_correct = self._grade_multiple_choice(question, selected)
        elif q_type is QuestionType.TRUE_FALSE:
            is_correct = self._grade_true_false(question, selected)
        elif q_type is QuestionType.FILL_IN_BLANK:
            is_correct = self._grade_fill_in_blank(question, text_answer)
        elif q_type is QuestionType.ESSAY:
            is_correct = False
        else:
            raise ValueError(f"No grading rule for question type {q_type!r}")

        return {
            "question_id": str(question["id"]),
            "selected_options": selected,
            "text_answer": text_answer or "",
            "is_correct": is_correct,
            "points_earned": question.get("points", 1) if is_correct else 0,
        }

    def _grade_multiple_choice(self, question: Dict[str, Any], selected: List[int]) -> bool:
        correct = {
            index for index, option in enumerate(question.get("options") or [])
            if option.get("is_correct")
        }
        return len(selected) == len(correct) and set(selected) == correct

    def _grade_true_false(self, question: Dict[str, Any], selected: List[int]) -> bool:
        if len(selected) != 1:
            return False

        options = question.get("options") or []
        index = selected[0]
        if not isinstance(index, int) or not 0 <= index < len(options):
            return False

        return bool(options[index].get("is_correct"))

    def _grade_fill_in_blank(self, question: Dict[str, Any], text_answer: Any) -> bool:
        if text_answer is None or question.get("correct_answer") is None:
            return False
        return self._normalize(text_answer) == self._normalize(question["correct_answer"])

    @staticmethod
    def _normalize(text: Any) -> str:
        return str(text).strip().lower()


# Global instance
grading_service = GradingService()
