"""Agent role tree: rollups, placement rules, deletion policy, integrity audit."""

from programs_core.hierarchy.deletion import (
    AgentHasReportsError,
    DeletionPlan,
    DeletionPolicy,
    plan_deletion,
)
from programs_core.hierarchy.integrity import IntegrityIssue, find_integrity_issues
from programs_core.hierarchy.placement import (
    MissingParent,
    PlacementError,
    RoleOrderViolation,
    validate_move,
    validate_placement,
)
from programs_core.hierarchy.rollup import (
    AgentIndex,
    CycleDetectedError,
    direct_report_count,
    rollup_totals,
    total_descendant_customers,
)
from programs_core.hierarchy.summary import agent_summary

__all__ = [
    "AgentHasReportsError",
    "DeletionPlan",
    "DeletionPolicy",
    "plan_deletion",
    "IntegrityIssue",
    "find_integrity_issues",
    "MissingParent",
    "PlacementError",
    "RoleOrderViolation",
    "validate_move",
    "validate_placement",
    "AgentIndex",
    "CycleDetectedError",
    "direct_report_count",
    "rollup_totals",
    "total_descendant_customers",
    "agent_summary",
]
