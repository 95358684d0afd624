"""Placement rules for create/move and the explicit deletion policies."""

import pytest

from programs_core.hierarchy import (
    AgentHasReportsError,
    AgentIndex,
    CycleDetectedError,
    DeletionPolicy,
    MissingParent,
    PlacementError,
    RoleOrderViolation,
    plan_deletion,
    validate_move,
    validate_placement,
)
from programs_core.models import Agent, Role

TEAM_LEADER = Agent(id="T", name="Team Lead", role=Role.TEAM_LEADER)
COORDINATOR = Agent(id="C", name="Coordinator", role=Role.COORDINATOR, parent_agent_id="T")
GROUP_LEADER = Agent(id="G", name="Group Lead", role=Role.GROUP_LEADER, parent_agent_id="C")


def _index():
    return AgentIndex(
        [
            TEAM_LEADER,
            COORDINATOR,
            GROUP_LEADER,
            Agent(id="G2", name="Group Lead 2", role=Role.GROUP_LEADER, parent_agent_id="C"),
            Agent(id="P1", name="Pro One", role=Role.PRO, parent_agent_id="G", customer_count=5),
            Agent(id="P2", name="Pro Two", role=Role.PRO, parent_agent_id="G", customer_count=3),
        ]
    )


@pytest.mark.parametrize(
    "parent,role",
    [
        (None, Role.TEAM_LEADER),
        (TEAM_LEADER, Role.COORDINATOR),
        (COORDINATOR, Role.GROUP_LEADER),
        (GROUP_LEADER, Role.PRO),
    ],
)
def test_adjacent_levels_accepted(parent, role):
    validate_placement(parent, role)


def test_pro_under_team_leader_is_role_skip():
    with pytest.raises(RoleOrderViolation) as exc_info:
        validate_placement(TEAM_LEADER, Role.PRO)
    assert exc_info.value.expected == Role.GROUP_LEADER
    assert isinstance(exc_info.value, PlacementError)


def test_child_placed_above_parent_rejected():
    with pytest.raises(RoleOrderViolation):
        validate_placement(GROUP_LEADER, Role.COORDINATOR)


def test_team_leader_with_parent_rejected():
    with pytest.raises(RoleOrderViolation):
        validate_placement(TEAM_LEADER, Role.TEAM_LEADER)


@pytest.mark.parametrize("role", [Role.COORDINATOR, Role.GROUP_LEADER, Role.PRO])
def test_missing_parent(role):
    with pytest.raises(MissingParent):
        validate_placement(None, role)


def test_role_accepts_plain_string():
    validate_placement(GROUP_LEADER, "pro")


def test_move_to_sibling_parent_allowed():
    index = _index()
    validate_move(index.get("P1"), index.get("G2"), index)


def test_move_under_own_descendant_rejected():
    """Role order alone allows this only with corrupt data, so build one."""
    corrupt = AgentIndex(
        [
            Agent(id="G", name="G", role=Role.GROUP_LEADER, parent_agent_id="X"),
            Agent(id="X", name="X", role=Role.COORDINATOR, parent_agent_id="G"),
        ]
    )
    with pytest.raises(CycleDetectedError):
        validate_move(corrupt.get("G"), corrupt.get("X"), corrupt)


def test_move_violating_role_order_rejected():
    index = _index()
    with pytest.raises(RoleOrderViolation):
        validate_move(index.get("P1"), index.get("C"), index)


def test_delete_leaf_needs_no_policy():
    index = _index()
    plan = plan_deletion(index.get("P1"), index)
    assert plan.delete_ids == ["P1"]
    assert plan.reparent == []


def test_delete_with_reports_rejected_by_default():
    index = _index()
    with pytest.raises(AgentHasReportsError) as exc_info:
        plan_deletion(index.get("G"), index)
    assert exc_info.value.report_count == 2


def test_cascade_deletes_children_before_parents():
    index = _index()
    plan = plan_deletion(index.get("C"), index, DeletionPolicy.CASCADE)
    assert set(plan.delete_ids) == {"C", "G", "G2", "P1", "P2"}
    assert plan.delete_ids[-1] == "C"
    assert plan.delete_ids.index("P1") < plan.delete_ids.index("G")
    assert plan.delete_ids.index("P2") < plan.delete_ids.index("G")


def test_reparent_moves_reports_to_new_parent():
    index = _index()
    plan = plan_deletion(index.get("G"), index, DeletionPolicy.REPARENT, index.get("G2"))
    assert plan.delete_ids == ["G"]
    assert sorted(plan.reparent) == [("P1", "G2"), ("P2", "G2")]


def test_reparent_to_wrong_level_rejected():
    index = _index()
    with pytest.raises(RoleOrderViolation):
        plan_deletion(index.get("G"), index, DeletionPolicy.REPARENT, index.get("C"))


def test_reparent_without_target_rejected():
    index = _index()
    with pytest.raises(ValueError):
        plan_deletion(index.get("G"), index, "reparent")
