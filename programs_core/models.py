"""Typed records for programs, form questions, registrations and agents."""

from dataclasses import dataclass, field
from enum import Enum

FIXED_FIELDS_KEY = "_fixed"
STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"


class Role(str, Enum):
    """Agent role levels, declared top-down."""

    TEAM_LEADER = "team_leader"
    COORDINATOR = "coordinator"
    GROUP_LEADER = "group_leader"
    PRO = "pro"


ROLE_ORDER = (Role.TEAM_LEADER, Role.COORDINATOR, Role.GROUP_LEADER, Role.PRO)

ROLE_LABELS = {
    Role.TEAM_LEADER: "Team Leader",
    Role.COORDINATOR: "Coordinator",
    Role.GROUP_LEADER: "Group Leader",
    Role.PRO: "PRO",
}


def child_role(role: Role) -> Role | None:
    """Role one level below, or None for pro."""
    idx = ROLE_ORDER.index(Role(role))
    return ROLE_ORDER[idx + 1] if idx + 1 < len(ROLE_ORDER) else None


def parent_role(role: Role) -> Role | None:
    """Role one level above, or None for team_leader."""
    idx = ROLE_ORDER.index(Role(role))
    return ROLE_ORDER[idx - 1] if idx > 0 else None


@dataclass(frozen=True)
class Program:
    id: str
    name: str
    verification_enabled: bool = False
    is_active: bool = True
    division_id: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Program":
        return cls(
            id=row["id"],
            name=row.get("name", ""),
            verification_enabled=bool(row.get("verification_enabled") or False),
            is_active=row.get("is_active", True) is not False,
            division_id=row.get("division_id"),
        )


@dataclass(frozen=True)
class FormQuestion:
    id: str
    program_id: str
    label: str
    sort_order: int = 0
    question_type: str | None = None
    is_required: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "FormQuestion":
        return cls(
            id=row["id"],
            program_id=row["program_id"],
            label=row.get("question_text") or row.get("label") or "",
            sort_order=int(row.get("sort_order") or 0),
            question_type=row.get("question_type"),
            is_required=bool(row.get("is_required") or False),
        )


@dataclass(frozen=True)
class Registration:
    """
    A public submission against one program.
    Verification fields stay None until the registration is verified.
    """

    id: str
    program_id: str
    answers: dict = field(default_factory=dict)
    created_at: str | None = None
    verification_status: str = STATUS_PENDING
    verification_scores: dict | None = None
    total_score: float | None = None
    max_score: float | None = None
    percentage: float | None = None
    verified_by: str | None = None
    verified_at: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Registration":
        scores = row.get("verification_scores")
        return cls(
            id=row["id"],
            program_id=row["program_id"],
            answers=dict(row.get("answers") or {}),
            created_at=row.get("created_at"),
            verification_status=row.get("verification_status") or STATUS_PENDING,
            verification_scores={k: int(v) for k, v in scores.items()} if scores else None,
            total_score=row.get("total_score"),
            max_score=row.get("max_score"),
            percentage=row.get("percentage"),
            verified_by=row.get("verified_by"),
            verified_at=row.get("verified_at"),
        )

    @property
    def fixed_fields(self) -> dict:
        return self.answers.get(FIXED_FIELDS_KEY) or {}

    @property
    def panchayath_id(self) -> str | None:
        return self.fixed_fields.get("panchayath_id")

    @property
    def is_verified(self) -> bool:
        return self.verification_status == STATUS_VERIFIED


@dataclass(frozen=True)
class Agent:
    id: str
    name: str
    role: Role
    parent_agent_id: str | None = None
    mobile: str = ""
    panchayath_id: str | None = None
    ward: str = "N/A"
    customer_count: int = 0
    is_active: bool = True

    @classmethod
    def from_row(cls, row: dict) -> "Agent":
        return cls(
            id=row["id"],
            name=row.get("name", ""),
            role=Role(row["role"]),
            parent_agent_id=row.get("parent_agent_id"),
            mobile=row.get("mobile") or "",
            panchayath_id=row.get("panchayath_id"),
            ward=row.get("ward") or "N/A",
            customer_count=int(row.get("customer_count") or 0),
            is_active=row.get("is_active", True) is not False,
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "parent_agent_id": self.parent_agent_id,
            "mobile": self.mobile,
            "panchayath_id": self.panchayath_id,
            "ward": self.ward,
            "customer_count": self.customer_count,
            "is_active": self.is_active,
        }
