"""Agent details view: position in the tree plus computed totals."""

from programs_core.hierarchy.rollup import AgentIndex, total_descendant_customers
from programs_core.models import ROLE_LABELS, Agent, Role, child_role


def _brief(agent: Agent) -> dict:
    return {
        "id": agent.id,
        "name": agent.name,
        "role": agent.role.value,
        "role_label": ROLE_LABELS[agent.role],
    }


def agent_summary(agent: Agent, index: AgentIndex) -> dict:
    parent = index.parent(agent)
    reports = index.children(agent)
    next_role = child_role(agent.role)
    summary = {
        **_brief(agent),
        "mobile": agent.mobile,
        "panchayath_id": agent.panchayath_id,
        "ward": agent.ward if agent.ward != "N/A" else None,
        "reports_to": _brief(parent) if parent else None,
        "direct_reports": [_brief(r) for r in reports],
        "direct_report_count": len(reports),
        "can_add_role": next_role.value if next_role else None,
        "total_customers": total_descendant_customers(agent, index),
    }
    if agent.role == Role.PRO:
        summary["customer_count"] = agent.customer_count
    return summary
