"""Scoring engine: aggregates, score validation, re-scoring replaces prior results."""

from datetime import datetime, timezone

import pytest

from programs_core.models import FormQuestion, Registration
from programs_core.scoring import (
    IncompleteScoresError,
    InvalidScoreError,
    apply_verification,
    score,
)

NOW = datetime(2026, 2, 3, 9, 30, tzinfo=timezone.utc)

QUESTIONS = [
    FormQuestion(id="Q1", program_id="P1", label="Land ownership", sort_order=1),
    FormQuestion(id="Q2", program_id="P1", label="Livestock", sort_order=2),
    FormQuestion(id="Q3", program_id="P1", label="Prior training", sort_order=3),
]

REGISTRATION = Registration(
    id="R1",
    program_id="P1",
    answers={"Q1": "yes", "_fixed": {"name": "Anitha", "mobile": "9400000000", "panchayath_id": "PN1", "ward": "4"}},
    created_at="2026-02-01T10:00:00Z",
)


def test_all_zero_scores_give_zero_percentage():
    result = score(REGISTRATION, QUESTIONS, {"Q1": 0, "Q2": 0, "Q3": 0}, actor="admin-1", now=NOW)
    assert result.total_score == 0
    assert result.max_score == 30
    assert result.percentage == 0


def test_all_ten_scores_give_full_percentage():
    result = score(REGISTRATION, QUESTIONS, {"Q1": 10, "Q2": 10, "Q3": 10}, actor="admin-1", now=NOW)
    assert result.total_score == 30
    assert result.percentage == 100


def test_result_carries_status_actor_and_timestamp():
    result = score(REGISTRATION, QUESTIONS, {"Q1": 7, "Q2": 5, "Q3": 3}, actor="admin-1", now=NOW)
    assert result.status == "verified"
    assert result.registration_id == "R1"
    assert result.verified_by == "admin-1"
    assert result.verified_at == "2026-02-03T09:30:00.000Z"
    assert result.total_score == 15
    assert result.percentage == pytest.approx(50.0)


def test_unscored_question_counts_as_zero():
    """Missing scores are filled with 0, not dropped from max_score."""
    result = score(REGISTRATION, QUESTIONS, {"Q1": 9}, actor=None, now=NOW)
    assert result.scores == {"Q1": 9, "Q2": 0, "Q3": 0}
    assert result.max_score == 30
    assert result.percentage == pytest.approx(30.0)


def test_require_complete_rejects_unscored_question():
    with pytest.raises(IncompleteScoresError) as exc_info:
        score(REGISTRATION, QUESTIONS, {"Q1": 9, "Q3": 2}, actor=None, now=NOW, require_complete=True)
    assert exc_info.value.question_id == "Q2"
    assert isinstance(exc_info.value, InvalidScoreError)


@pytest.mark.parametrize("bad", [11, -1])
def test_out_of_range_score_identifies_question(bad):
    with pytest.raises(InvalidScoreError) as exc_info:
        score(REGISTRATION, QUESTIONS, {"Q1": 5, "Q2": bad, "Q3": 5}, actor=None, now=NOW)
    assert exc_info.value.question_id == "Q2"
    assert exc_info.value.value == bad
    assert "Q2" in str(exc_info.value)
    # the input registration is untouched
    assert REGISTRATION.verification_status == "pending"
    assert REGISTRATION.verification_scores is None


@pytest.mark.parametrize("bad", [5.5, "7", True, None])
def test_non_integer_score_rejected(bad):
    with pytest.raises(InvalidScoreError):
        score(REGISTRATION, QUESTIONS, {"Q1": bad}, actor=None, now=NOW)


def test_score_for_unknown_question_rejected():
    with pytest.raises(InvalidScoreError) as exc_info:
        score(REGISTRATION, QUESTIONS, {"Q1": 5, "Q9": 5}, actor=None, now=NOW)
    assert exc_info.value.question_id == "Q9"


def test_question_from_other_program_rejected():
    foreign = [FormQuestion(id="X1", program_id="P2", label="Other")]
    with pytest.raises(ValueError):
        score(REGISTRATION, foreign, {}, actor=None, now=NOW)


def test_duplicate_question_ids_rejected():
    doubled = QUESTIONS + [QUESTIONS[0]]
    with pytest.raises(ValueError) as exc_info:
        score(REGISTRATION, doubled, {"Q1": 10, "Q2": 10, "Q3": 10}, actor=None, now=NOW)
    assert "Q1" in str(exc_info.value)


def test_no_questions_gives_zero_percentage():
    result = score(REGISTRATION, [], {}, actor=None, now=NOW)
    assert result.max_score == 0
    assert result.percentage == 0


def test_rescoring_replaces_previous_result():
    """Second verification overwrites aggregates; nothing accumulates."""
    first = score(REGISTRATION, QUESTIONS, {"Q1": 10, "Q2": 10, "Q3": 10}, actor="admin-1", now=NOW)
    verified = apply_verification(REGISTRATION, first)
    assert verified.is_verified
    assert verified.total_score == 30

    later = datetime(2026, 2, 4, 8, 0, tzinfo=timezone.utc)
    second = score(verified, QUESTIONS, {"Q1": 2, "Q2": 1, "Q3": 0}, actor="admin-2", now=later)
    reverified = apply_verification(verified, second)
    assert reverified.verification_status == "verified"
    assert reverified.total_score == 3
    assert reverified.max_score == 30
    assert reverified.percentage == pytest.approx(10.0)
    assert reverified.verification_scores == {"Q1": 2, "Q2": 1, "Q3": 0}
    assert reverified.verified_by == "admin-2"
    assert reverified.verified_at == "2026-02-04T08:00:00.000Z"


def test_apply_verification_rejects_other_registration():
    result = score(REGISTRATION, QUESTIONS, {}, actor=None, now=NOW)
    other = Registration(id="R2", program_id="P1")
    with pytest.raises(ValueError):
        apply_verification(other, result)


def test_to_row_contains_all_verification_columns():
    row = score(REGISTRATION, QUESTIONS, {"Q1": 4}, actor="admin-1", now=NOW).to_row()
    assert set(row) == {
        "verification_status",
        "verification_scores",
        "total_score",
        "max_score",
        "percentage",
        "verified_by",
        "verified_at",
    }
    assert row["verification_status"] == "verified"
