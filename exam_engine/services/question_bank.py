"""
Read-only question bank used for the duration of an attempt
"""
import copy
import random
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    FILL_IN_BLANK = "fill-in-blank"
    ESSAY = "essay"


CHOICE_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)


class QuestionBank:
    """
    Immutable snapshot of a test's questions

    The test row stores questions as a JSON list of dicts. The bank deep
    copies that list on construction so grading never sees edits made to
    the row afterwards.
    """

    def __init__(self, questions: Optional[List[Dict[str, Any]]]):
        self._questions = tuple(copy.deepcopy(questions or []))
        self._by_id = {str(q["id"]): q for q in self._questions}

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._questions)

    def __len__(self) -> int:
        return len(self._questions)

    def get(self, question_id: Any) -> Optional[Dict[str, Any]]:
        return self._by_id.get(str(question_id))

    @property
    def total_points(self) -> int:
        return sum(q.get("points", 1) for q in self._questions)

    def sanitized(
        self,
        rng: Optional[random.Random] = None,
        shuffle: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Questions safe to send to a student

        Args:
            rng: Randomness source used when shuffling
            shuffle: Return a fresh permutation instead of authored order

        Returns:
            List of question dicts without correct flags, answer keys or explanations
        """
        questions = list(self._questions)
        if shuffle:
            rng = rng or random.Random()
            questions = rng.sample(questions, len(questions))

        return [
            {
                "id": str(q["id"]),
                "text": q["text"],
                "type": q["type"],
                "options": [{"text": opt["text"]} for opt in q.get("options") or []],
                "points": q.get("points", 1),
                "difficulty": q.get("difficulty", "medium"),
                "tags": list(q.get("tags") or []),
            }
            for q in questions
        ]
