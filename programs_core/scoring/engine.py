"""Deterministic verification scoring. Pure code, no I/O."""

from dataclasses import dataclass, field, replace
from datetime import datetime

from programs_core.models import STATUS_VERIFIED, FormQuestion, Registration
from programs_core.utils import to_iso

MIN_SCORE = 0
MAX_SCORE = 10


class InvalidScoreError(ValueError):
    """Raised when a score is not an integer in [0, 10] or targets an unknown question."""

    def __init__(self, question_id: str, value, reason: str):
        self.question_id = question_id
        self.value = value
        super().__init__(f"Question {question_id}: {reason} (got {value!r})")


class IncompleteScoresError(InvalidScoreError):
    """Raised when complete scoring is required and a question has no score."""

    def __init__(self, question_id: str):
        super().__init__(question_id, None, "no score supplied")


@dataclass(frozen=True)
class VerificationResult:
    registration_id: str
    scores: dict = field(default_factory=dict)
    total_score: int = 0
    max_score: int = 0
    percentage: float = 0.0
    verified_by: str | None = None
    verified_at: str | None = None
    status: str = STATUS_VERIFIED

    def to_row(self) -> dict:
        """Column update written atomically with the status transition."""
        return {
            "verification_status": self.status,
            "verification_scores": dict(self.scores),
            "total_score": self.total_score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "verified_by": self.verified_by,
            "verified_at": self.verified_at,
        }


def _check_score(question_id: str, value) -> int:
    # bool is an int subclass; True must not count as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScoreError(question_id, value, "score must be an integer")
    if value < MIN_SCORE or value > MAX_SCORE:
        raise InvalidScoreError(
            question_id, value, f"score must be between {MIN_SCORE} and {MAX_SCORE}"
        )
    return value


def validate_scores(
    questions: list[FormQuestion],
    scores_by_question: dict,
    require_complete: bool = False,
) -> dict:
    """
    Validate a caller-supplied score map against the question set.
    Returns the complete map (unscored questions as 0). Raises InvalidScoreError.
    """
    question_ids = [q.id for q in questions]
    known = set(question_ids)
    for qid, value in scores_by_question.items():
        if qid not in known:
            raise InvalidScoreError(qid, value, "question is not part of this program")
        _check_score(qid, value)

    complete = {}
    for qid in question_ids:
        if qid not in scores_by_question:
            if require_complete:
                raise IncompleteScoresError(qid)
            complete[qid] = 0
        else:
            complete[qid] = scores_by_question[qid]
    return complete


def score(
    registration: Registration,
    questions: list[FormQuestion],
    scores_by_question: dict,
    *,
    actor: str | None,
    now: datetime | str,
    require_complete: bool = False,
) -> VerificationResult:
    """
    Score one registration against its program's questions.
    Every question contributes up to 10 points; the registration itself is not modified.
    """
    seen = set()
    for q in questions:
        if q.program_id != registration.program_id:
            raise ValueError(
                f"Question {q.id} belongs to program {q.program_id}, "
                f"not {registration.program_id}"
            )
        # max_score counts questions; a repeated id would inflate it
        if q.id in seen:
            raise ValueError(f"Question {q.id} appears more than once")
        seen.add(q.id)

    scores = validate_scores(questions, scores_by_question, require_complete)

    total_score = sum(scores.values())
    max_score = MAX_SCORE * len(questions)
    percentage = (total_score / max_score * 100) if max_score > 0 else 0.0

    return VerificationResult(
        registration_id=registration.id,
        scores=scores,
        total_score=total_score,
        max_score=max_score,
        percentage=percentage,
        verified_by=actor,
        verified_at=to_iso(now),
    )


def apply_verification(registration: Registration, result: VerificationResult) -> Registration:
    """Return the registration with the result's fields replacing any previous verification."""
    if result.registration_id != registration.id:
        raise ValueError(
            f"Result for {result.registration_id} cannot be applied to {registration.id}"
        )
    return replace(
        registration,
        verification_status=result.status,
        verification_scores=dict(result.scores),
        total_score=result.total_score,
        max_score=result.max_score,
        percentage=result.percentage,
        verified_by=result.verified_by,
        verified_at=result.verified_at,
    )
