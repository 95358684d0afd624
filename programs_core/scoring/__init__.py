"""Verification scoring engine and tier classification."""

from programs_core.scoring.engine import (
    IncompleteScoresError,
    InvalidScoreError,
    VerificationResult,
    apply_verification,
    score,
    validate_scores,
)
from programs_core.scoring.tiers import Tier, classify, format_percentage, verification_badge

__all__ = [
    "IncompleteScoresError",
    "InvalidScoreError",
    "VerificationResult",
    "apply_verification",
    "score",
    "validate_scores",
    "Tier",
    "classify",
    "format_percentage",
    "verification_badge",
]
