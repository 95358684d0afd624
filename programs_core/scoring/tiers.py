"""Presentation tiers for verified registrations."""

from enum import Enum

from programs_core.models import Program, Registration

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40


class Tier(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def classify(percentage: float) -> Tier:
    """Single rule for every screen that shows a verification percentage."""
    if percentage >= HIGH_THRESHOLD:
        return Tier.HIGH
    if percentage >= MEDIUM_THRESHOLD:
        return Tier.MEDIUM
    return Tier.LOW


def format_percentage(value: float | None) -> str:
    return f"{(value or 0):.1f}%"


def verification_badge(registration: Registration, program: Program | None) -> dict | None:
    """
    Badge shown next to a registration.
    None when the program does not use verification.
    """
    if program is None or not program.verification_enabled:
        return None
    if not registration.is_verified:
        return {"status": "pending", "label": "Pending"}

    percentage = registration.percentage or 0
    return {
        "status": "verified",
        "tier": classify(percentage).value,
        "percentage": percentage,
        "label": format_percentage(percentage),
        "score_label": f"{registration.total_score or 0:g} / {registration.max_score or 0:g}",
    }
