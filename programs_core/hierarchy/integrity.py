"""Integrity audit over a stored agent set."""

from collections import Counter
from dataclasses import dataclass

from programs_core.hierarchy.rollup import MAX_DEPTH, AgentIndex
from programs_core.models import Role, parent_role

DUPLICATE_ID = "duplicate_id"
ORPHAN = "orphan"
MISSING_PARENT = "missing_parent"
ROLE_ORDER_VIOLATION = "role_order_violation"
CYCLE = "cycle"
STRAY_CUSTOMERS = "stray_customers"


@dataclass(frozen=True)
class IntegrityIssue:
    kind: str
    agent_id: str
    detail: str

    def to_dict(self) -> dict:
        return {"kind": self.kind, "agent_id": self.agent_id, "detail": self.detail}


def _on_cycle(agent, index: AgentIndex) -> bool:
    seen = {agent.id}
    current = index.parent(agent)
    steps = 0
    while current is not None and steps <= MAX_DEPTH:
        if current.id in seen:
            return current.id == agent.id
        seen.add(current.id)
        current = index.parent(current)
        steps += 1
    return False


def find_integrity_issues(agents) -> list[IntegrityIssue]:
    """Report every structural problem instead of failing on the first one."""
    agents = list(agents)
    index = AgentIndex(agents)
    issues = []

    for agent_id, n in Counter(a.id for a in agents).items():
        if n > 1:
            issues.append(IntegrityIssue(DUPLICATE_ID, agent_id, f"id appears {n} times"))

    for a in agents:
        expected = parent_role(a.role)
        if a.parent_agent_id is None:
            if expected is not None:
                issues.append(IntegrityIssue(MISSING_PARENT, a.id, f"{a.role.value} has no parent"))
        else:
            parent = index.parent(a)
            if parent is None:
                issues.append(
                    IntegrityIssue(ORPHAN, a.id, f"parent {a.parent_agent_id} does not exist")
                )
            elif parent.role != expected:
                want = expected.value if expected else "no parent"
                issues.append(
                    IntegrityIssue(
                        ROLE_ORDER_VIOLATION,
                        a.id,
                        f"{a.role.value} reports to {parent.role.value}, expected {want}",
                    )
                )
            if _on_cycle(a, index):
                issues.append(IntegrityIssue(CYCLE, a.id, "agent is its own ancestor"))

        if a.role != Role.PRO and a.customer_count:
            issues.append(
                IntegrityIssue(
                    STRAY_CUSTOMERS,
                    a.id,
                    f"{a.role.value} carries customer_count={a.customer_count}; only pro counts are used",
                )
            )
    return issues
