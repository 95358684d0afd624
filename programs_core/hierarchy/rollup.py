"""Customer rollup over the agent role tree."""

from collections import defaultdict

from programs_core.models import ROLE_ORDER, Agent, Role

MAX_DEPTH = len(ROLE_ORDER)


class CycleDetectedError(ValueError):
    """Raised when the parent links loop back or run deeper than the role levels allow."""

    def __init__(self, path: list[str], reason: str = "cycle in agent hierarchy"):
        self.path = list(path)
        super().__init__(f"{reason}: {' -> '.join(self.path)}")


class AgentIndex:
    """
    One-time index over a flat agent list: id -> agent, parent id -> children.
    Build once per query batch; every rollup afterwards is O(subtree size).
    """

    def __init__(self, agents):
        self.agents = list(agents)
        self.by_id: dict[str, Agent] = {}
        self.children_by_parent: dict[str, list[Agent]] = defaultdict(list)
        for a in self.agents:
            self.by_id[a.id] = a
            if a.parent_agent_id is not None:
                self.children_by_parent[a.parent_agent_id].append(a)

    def get(self, agent_id: str) -> Agent | None:
        return self.by_id.get(agent_id)

    def children(self, agent: Agent) -> list[Agent]:
        return list(self.children_by_parent.get(agent.id, []))

    def parent(self, agent: Agent) -> Agent | None:
        if agent.parent_agent_id is None:
            return None
        return self.by_id.get(agent.parent_agent_id)

    def roots(self) -> list[Agent]:
        return [a for a in self.agents if a.parent_agent_id is None]

    def ancestors(self, agent: Agent) -> list[Agent]:
        """Parents from nearest to root. Raises CycleDetectedError on a loop."""
        chain = []
        seen = [agent.id]
        current = self.parent(agent)
        while current is not None:
            if current.id in seen:
                raise CycleDetectedError(seen + [current.id])
            if len(seen) >= MAX_DEPTH:
                raise CycleDetectedError(seen, "ancestor chain deeper than role levels")
            seen.append(current.id)
            chain.append(current)
            current = self.parent(current)
        return chain

    def descendants(self, agent: Agent) -> list[Agent]:
        """Whole subtree below agent, depth first, children after their parent."""
        out = []

        def walk(node: Agent, path: list[str]) -> None:
            for child in self.children(node):
                if child.id in path:
                    raise CycleDetectedError(path + [child.id])
                if len(path) >= MAX_DEPTH:
                    raise CycleDetectedError(path + [child.id], "subtree deeper than role levels")
                out.append(child)
                walk(child, path + [child.id])

        walk(agent, [agent.id])
        return out


def as_index(agents) -> AgentIndex:
    return agents if isinstance(agents, AgentIndex) else AgentIndex(agents)


def _total(index: AgentIndex, agent: Agent, path: list[str]) -> int:
    if agent.role == Role.PRO:
        return agent.customer_count or 0
    total = 0
    for child in index.children(agent):
        if child.id in path:
            raise CycleDetectedError(path + [child.id])
        if len(path) >= MAX_DEPTH:
            raise CycleDetectedError(path + [child.id], "subtree deeper than role levels")
        total += _total(index, child, path + [child.id])
    return total


def total_descendant_customers(node: Agent, all_agents) -> int:
    """
    Customers under node: a pro's own customer_count, otherwise the sum over its
    direct children. Accepts an AgentIndex or a plain list of agents.
    """
    index = as_index(all_agents)
    return _total(index, node, [node.id])


def direct_report_count(node: Agent, all_agents) -> int:
    return len(as_index(all_agents).children(node))


def rollup_totals(all_agents) -> dict[str, int]:
    """Total customers for every agent in the batch over one shared index."""
    index = as_index(all_agents)
    return {a.id: _total(index, a, [a.id]) for a in index.agents}
