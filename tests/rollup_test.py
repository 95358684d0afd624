"""Customer rollup over the agent tree, including the cycle guard."""

import pytest

from programs_core.hierarchy import (
    AgentIndex,
    CycleDetectedError,
    agent_summary,
    direct_report_count,
    rollup_totals,
    total_descendant_customers,
)
from programs_core.models import Agent, Role


def _tree():
    return [
        Agent(id="T", name="Team Lead", role=Role.TEAM_LEADER),
        Agent(id="C", name="Coordinator", role=Role.COORDINATOR, parent_agent_id="T"),
        Agent(id="G", name="Group Lead", role=Role.GROUP_LEADER, parent_agent_id="C"),
        Agent(id="P1", name="Pro One", role=Role.PRO, parent_agent_id="G", customer_count=5),
        Agent(id="P2", name="Pro Two", role=Role.PRO, parent_agent_id="G", customer_count=3),
    ]


def test_pro_returns_own_customer_count():
    pro = Agent(id="P", name="Solo", role=Role.PRO, customer_count=7)
    assert total_descendant_customers(pro, [pro]) == 7


def test_pro_without_customers_returns_zero():
    pro = Agent(id="P", name="Solo", role=Role.PRO)
    assert total_descendant_customers(pro, [pro]) == 0


def test_leaderless_node_returns_zero():
    lead = Agent(id="T", name="Alone", role=Role.TEAM_LEADER)
    assert total_descendant_customers(lead, [lead]) == 0


def test_totals_propagate_up_every_level():
    agents = _tree()
    index = AgentIndex(agents)
    for agent_id in ("G", "C", "T"):
        assert total_descendant_customers(index.get(agent_id), index) == 8
    # plain list works the same as a prebuilt index
    assert total_descendant_customers(agents[0], agents) == 8


def test_customer_count_on_non_pro_is_ignored():
    agents = _tree()
    agents[1] = Agent(id="C", name="Coordinator", role=Role.COORDINATOR, parent_agent_id="T", customer_count=100)
    assert total_descendant_customers(agents[0], agents) == 8


def test_direct_report_count():
    agents = _tree()
    index = AgentIndex(agents)
    assert direct_report_count(index.get("G"), index) == 2
    assert direct_report_count(index.get("T"), agents) == 1
    assert direct_report_count(index.get("P1"), index) == 0


def test_rollup_totals_for_every_agent():
    assert rollup_totals(_tree()) == {"T": 8, "C": 8, "G": 8, "P1": 5, "P2": 3}


def test_cycle_raises_instead_of_hanging():
    agents = [
        Agent(id="A", name="A", role=Role.COORDINATOR, parent_agent_id="B"),
        Agent(id="B", name="B", role=Role.GROUP_LEADER, parent_agent_id="A"),
    ]
    with pytest.raises(CycleDetectedError) as exc_info:
        total_descendant_customers(agents[0], agents)
    assert "A" in exc_info.value.path


def test_self_parent_is_a_cycle():
    agent = Agent(id="A", name="A", role=Role.TEAM_LEADER, parent_agent_id="A")
    with pytest.raises(CycleDetectedError):
        total_descendant_customers(agent, [agent])


def test_chain_deeper_than_role_levels_rejected():
    agents = [Agent(id="C0", name="C0", role=Role.COORDINATOR)]
    for i in range(1, 6):
        agents.append(Agent(id=f"C{i}", name=f"C{i}", role=Role.COORDINATOR, parent_agent_id=f"C{i - 1}"))
    with pytest.raises(CycleDetectedError):
        total_descendant_customers(agents[0], agents)


def test_ancestors_and_parent_lookup():
    index = AgentIndex(_tree())
    pro = index.get("P1")
    assert index.parent(pro).id == "G"
    assert [a.id for a in index.ancestors(pro)] == ["G", "C", "T"]
    assert index.parent(index.get("T")) is None


def test_agent_summary():
    index = AgentIndex(_tree())
    summary = agent_summary(index.get("G"), index)
    assert summary["role_label"] == "Group Leader"
    assert summary["reports_to"]["id"] == "C"
    assert summary["direct_report_count"] == 2
    assert [r["id"] for r in summary["direct_reports"]] == ["P1", "P2"]
    assert summary["can_add_role"] == "pro"
    assert summary["total_customers"] == 8
    assert summary["ward"] is None

    pro_summary = agent_summary(index.get("P1"), index)
    assert pro_summary["can_add_role"] is None
    assert pro_summary["customer_count"] == 5
