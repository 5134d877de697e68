import pytest

from exam_engine.services.grading_service import GradingService
from exam_engine.services.question_bank import QuestionBank


CAPITAL_MC = {
    "id": "mc",
    "text": "Capital of France?",
    "type": "multiple-choice",
    "options": [
        {"text": "Paris", "is_correct": True},
        {"text": "Lyon", "is_correct": False},
    ],
    "points": 2,
}

PRIMES_MC = {
    "id": "primes",
    "text": "Which are prime?",
    "type": "multiple-choice",
    "options": [
        {"text": "2", "is_correct": True},
        {"text": "4", "is_correct": False},
        {"text": "5", "is_correct": True},
    ],
    "points": 3,
}

SKY_TF = {
    "id": "tf",
    "text": "The sky is green.",
    "type": "true-false",
    "options": [
        {"text": "True", "is_correct": False},
        {"text": "False", "is_correct": True},
    ],
    "points": 1,
}

CAPITAL_BLANK = {
    "id": "blank",
    "text": "The capital of France is ___.",
    "type": "fill-in-blank",
    "options": [],
    "correct_answer": "Paris",
    "points": 4,
}

ESSAY = {
    "id": "essay",
    "text": "Discuss the French Revolution.",
    "type": "essay",
    "options": [],
    "points": 10,
}


@pytest.fixture
def grader():
    return GradingService()


@pytest.mark.parametrize(
    "selected, is_correct, points",
    [
        ([0], True, 2),
        ([1], False, 0),
        ([0, 1], False, 0),
        ([], False, 0),
    ],
)
def test_multiple_choice_single_correct(grader, selected, is_correct, points):
    record = grader.grade_answer(CAPITAL_MC, {"question_id": "mc", "selected_options": selected})

    assert record["is_correct"] is is_correct
    assert record["points_earned"] == points


def test_multiple_choice_is_order_independent_without_partial_credit(grader):
    both = grader.grade_answer(PRIMES_MC, {"question_id": "primes", "selected_options": [2, 0]})
    partial = grader.grade_answer(PRIMES_MC, {"question_id": "primes", "selected_options": [0]})
    duplicated = grader.grade_answer(PRIMES_MC, {"question_id": "primes", "selected_options": [0, 0]})

    assert both["is_correct"] is True
    assert both["points_earned"] == 3
    assert partial["points_earned"] == 0
    assert duplicated["is_correct"] is False


def test_multiple_choice_out_of_range_index_never_matches(grader):
    record = grader.grade_answer(CAPITAL_MC, {"question_id": "mc", "selected_options": [7]})

    assert record["is_correct"] is False


@pytest.mark.parametrize(
    "selected, is_correct",
    [
        ([1], True),
        ([0], False),
        ([0, 1], False),
        ([], False),
        ([5], False),
        ([-1], False),
    ],
)
def test_true_false(grader, selected, is_correct):
    record = grader.grade_answer(SKY_TF, {"question_id": "tf", "selected_options": selected})

    assert record["is_correct"] is is_correct


@pytest.mark.parametrize(
    "text_answer, is_correct",
    [
        ("Paris", True),
        ("  paris ", True),
        ("PARIS", True),
        ("Lyon", False),
        ("", False),
        (None, False),
    ],
)
def test_fill_in_blank_normalization(grader, text_answer, is_correct):
    record = grader.grade_answer(CAPITAL_BLANK, {"question_id": "blank", "text_answer": text_answer})

    assert record["is_correct"] is is_correct
    assert record["points_earned"] == (4 if is_correct else 0)


@pytest.mark.parametrize("text_answer", ["A thoughtful essay", "", None])
def test_essay_is_never_auto_correct(grader, text_answer):
    record = grader.grade_answer(ESSAY, {"question_id": "essay", "text_answer": text_answer})

    assert record["is_correct"] is False
    assert record["points_earned"] == 0


def test_grade_answers_sums_points_and_drops_unknown_questions(grader):
    bank = QuestionBank([CAPITAL_MC, SKY_TF, CAPITAL_BLANK, ESSAY])

    records, score = grader.grade_answers(
        bank,
        [
            {"question_id": "mc", "selected_options": [0]},
            {"question_id": "ghost", "selected_options": [0]},
            {"question_id": "tf", "selected_options": [0]},
            {"question_id": "blank", "text_answer": " paris"},
            {"question_id": "essay", "text_answer": "..."},
        ],
    )

    assert score == 6
    assert [r["question_id"] for r in records] == ["mc", "tf", "blank", "essay"]
    assert [r["points_earned"] for r in records] == [2, 0, 4, 0]


def test_grade_answers_only_counts_first_answer_per_question(grader):
    bank = QuestionBank([CAPITAL_MC])

    records, score = grader.grade_answers(
        bank,
        [
            {"question_id": "mc", "selected_options": [0]},
            {"question_id": "mc", "selected_options": [0]},
        ],
    )

    assert score == 2
    assert len(records) == 1


def test_answer_record_shape(grader):
    record = grader.grade_answer(CAPITAL_MC, {"question_id": "mc", "selected_options": [0]})

    assert record == {
        "question_id": "mc",
        "selected_options": [0],
        "text_answer": "",
        "is_correct": True,
        "points_earned": 2,
    }


def test_unknown_question_type_is_rejected(grader):
    with pytest.raises(ValueError):
        grader.grade_answer({**ESSAY, "type": "matching"}, {"question_id": "essay"})
