"""Explicit deletion policies for agents with direct reports."""

from dataclasses import dataclass, field
from enum import Enum

from programs_core.hierarchy.placement import validate_placement
from programs_core.hierarchy.rollup import AgentIndex
from programs_core.models import Agent


class DeletionPolicy(str, Enum):
    REJECT = "reject"
    CASCADE = "cascade"
    REPARENT = "reparent"


class AgentHasReportsError(ValueError):
    """Raised by the reject policy when the agent still has direct reports."""

    def __init__(self, agent: Agent, report_count: int):
        self.agent = agent
        self.report_count = report_count
        super().__init__(
            f"{agent.name} has {report_count} direct report(s); "
            "reassign them or delete with cascade"
        )


@dataclass(frozen=True)
class DeletionPlan:
    agent_id: str
    policy: DeletionPolicy
    # delete order: descendants first, the agent itself last
    delete_ids: list = field(default_factory=list)
    # (child_id, new_parent_id) pairs applied before the delete
    reparent: list = field(default_factory=list)


def plan_deletion(
    agent: Agent,
    index: AgentIndex,
    policy: DeletionPolicy = DeletionPolicy.REJECT,
    new_parent: Agent | None = None,
) -> DeletionPlan:
    """Decide what happens to agent's subtree. Never leaves a dangling parent reference."""
    policy = DeletionPolicy(policy)
    reports = index.children(agent)

    if not reports:
        return DeletionPlan(agent_id=agent.id, policy=policy, delete_ids=[agent.id])

    if policy == DeletionPolicy.REJECT:
        raise AgentHasReportsError(agent, len(reports))

    if policy == DeletionPolicy.CASCADE:
        subtree = index.descendants(agent)
        delete_ids = [a.id for a in reversed(subtree)] + [agent.id]
        return DeletionPlan(agent_id=agent.id, policy=policy, delete_ids=delete_ids)

    if new_parent is None or new_parent.id == agent.id:
        raise ValueError("reparent policy needs a replacement parent other than the deleted agent")
    for child in reports:
        validate_placement(new_parent, child.role)
    return DeletionPlan(
        agent_id=agent.id,
        policy=policy,
        delete_ids=[agent.id],
        reparent=[(child.id, new_parent.id) for child in reports],
    )
