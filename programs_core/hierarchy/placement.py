"""Structural checks run before an agent is created or moved."""

from programs_core.hierarchy.rollup import AgentIndex, CycleDetectedError
from programs_core.models import ROLE_LABELS, Agent, Role, parent_role


class PlacementError(ValueError):
    """Base for agent placement failures."""


class RoleOrderViolation(PlacementError):
    """Parent role is not the level immediately above the child role."""

    def __init__(self, parent: Agent | None, role: Role, expected: Role | None):
        self.parent = parent
        self.role = Role(role)
        self.expected = expected
        if expected is None:
            msg = f"{ROLE_LABELS[self.role]} is a top-level role and cannot report to {parent.name}"
        else:
            msg = (
                f"{ROLE_LABELS[self.role]} must report to a {ROLE_LABELS[expected]}, "
                f"not a {ROLE_LABELS[parent.role]} ({parent.name})"
            )
        super().__init__(msg)


class MissingParent(PlacementError):
    """A non-root role was placed without a parent."""

    def __init__(self, role: Role):
        self.role = Role(role)
        expected = parent_role(self.role)
        super().__init__(f"{ROLE_LABELS[self.role]} requires a {ROLE_LABELS[expected]} parent")


def validate_placement(candidate_parent: Agent | None, candidate_role: Role) -> None:
    """
    Enforce level-order adjacency: team_leader takes no parent, every other role
    reports to the role exactly one level up. Raises PlacementError.
    """
    role = Role(candidate_role)
    expected = parent_role(role)
    if expected is None:
        if candidate_parent is not None:
            raise RoleOrderViolation(candidate_parent, role, None)
        return
    if candidate_parent is None:
        raise MissingParent(role)
    if candidate_parent.role != expected:
        raise RoleOrderViolation(candidate_parent, role, expected)


def validate_move(agent: Agent, new_parent: Agent | None, index: AgentIndex) -> None:
    """Placement check for re-parenting an existing agent, refusing moves into its own subtree."""
    validate_placement(new_parent, agent.role)
    if new_parent is None:
        return
    if new_parent.id == agent.id:
        raise CycleDetectedError([agent.id, agent.id], "agent cannot report to itself")
    chain = [new_parent] + index.ancestors(new_parent)
    if any(a.id == agent.id for a in chain):
        raise CycleDetectedError(
            [agent.id] + [a.id for a in reversed(chain)], "move would create a cycle"
        )
