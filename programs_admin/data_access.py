"""Data access: Supabase tables, or a JSON snapshot for offline runs and tests."""

import json
import logging
from functools import lru_cache
from pathlib import Path

from postgrest.exceptions import APIError
from supabase import Client, create_client

from programs_admin import config
from programs_core.models import Agent, FormQuestion, Program, Registration
from programs_core.scoring import VerificationResult
from programs_core.utils import created_at_sort_key
from programs_core.validation import (
    parse_agent,
    parse_program,
    parse_question,
    parse_registration,
    validate_row,
)

log = logging.getLogger("programs_admin.data_access")

PROGRAMS_TABLE = "programs"
QUESTIONS_TABLE = "program_form_questions"
REGISTRATIONS_TABLE = "program_registrations"
AGENTS_TABLE = "pennyekart_agents"


class DataAccessError(RuntimeError):
    """Raised when the backing store rejects or fails a request."""


class NotFoundError(LookupError):
    """Raised when a requested row does not exist."""


@lru_cache()
def get_supabase_client() -> Client:
    """Cached client built from SUPABASE_URL and the service role key."""
    return create_client(config.supabase_url(), config.supabase_key())


class SupabaseStore:
    """Reads and writes through the Supabase REST API. Row-level security is the backend's job."""

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def _run(self, what: str, query) -> list[dict]:
        try:
            response = query.execute()
        except APIError as e:
            log.error("%s failed: %s", what, e)
            raise DataAccessError(f"{what} failed: {e}") from e
        return response.data or []

    def fetch_program(self, program_id: str) -> Program:
        rows = self._run(
            "fetch_program",
            self.client.table(PROGRAMS_TABLE).select("*").eq("id", program_id).limit(1),
        )
        if not rows:
            raise NotFoundError(f"Program not found: {program_id}")
        return parse_program(rows[0])

    def fetch_programs(self, division_id: str | None = None) -> list[Program]:
        query = self.client.table(PROGRAMS_TABLE).select("*").eq("is_active", True)
        if division_id:
            query = query.eq("division_id", division_id)
        return [parse_program(r) for r in self._run("fetch_programs", query.order("name"))]

    def update_program(self, program_id: str, changes: dict) -> Program:
        rows = self._run(
            "update_program",
            self.client.table(PROGRAMS_TABLE).update(changes).eq("id", program_id),
        )
        if not rows:
            raise NotFoundError(f"Program not found: {program_id}")
        return parse_program(rows[0])

    def fetch_questions(self, program_id: str) -> list[FormQuestion]:
        rows = self._run(
            "fetch_questions",
            self.client.table(QUESTIONS_TABLE)
            .select("*")
            .eq("program_id", program_id)
            .order("sort_order"),
        )
        return [parse_question(r) for r in rows]

    def fetch_registrations(self, program_id: str) -> list[Registration]:
        rows = self._run(
            "fetch_registrations",
            self.client.table(REGISTRATIONS_TABLE)
            .select("*")
            .eq("program_id", program_id)
            .order("created_at", desc=True),
        )
        return [parse_registration(r) for r in rows]

    def fetch_registration(self, registration_id: str) -> Registration:
        rows = self._run(
            "fetch_registration",
            self.client.table(REGISTRATIONS_TABLE).select("*").eq("id", registration_id).limit(1),
        )
        if not rows:
            raise NotFoundError(f"Registration not found: {registration_id}")
        return parse_registration(rows[0])

    def fetch_agents(self, scope_filter: dict | None = None) -> list[Agent]:
        query = self.client.table(AGENTS_TABLE).select("*")
        for column, value in (scope_filter or {}).items():
            query = query.eq(column, value)
        return [parse_agent(r) for r in self._run("fetch_agents", query)]

    def persist_verification(self, registration_id: str, result: VerificationResult) -> None:
        rows = self._run(
            "persist_verification",
            self.client.table(REGISTRATIONS_TABLE)
            .update(result.to_row())
            .eq("id", registration_id),
        )
        if not rows:
            raise NotFoundError(f"Registration not found: {registration_id}")

    def persist_agent(self, agent: Agent) -> None:
        row = agent.to_row()
        validate_row("agent", row)
        self._run("persist_agent", self.client.table(AGENTS_TABLE).upsert(row))

    def update_agent_parents(self, updates: list[tuple[str, str | None]]) -> None:
        """One UPDATE per distinct new parent; a reparent plan has exactly one."""
        by_parent: dict[str | None, list[str]] = {}
        for agent_id, parent_id in updates:
            by_parent.setdefault(parent_id, []).append(agent_id)
        for parent_id, agent_ids in by_parent.items():
            self._run(
                "update_agent_parents",
                self.client.table(AGENTS_TABLE)
                .update({"parent_agent_id": parent_id})
                .in_("id", agent_ids),
            )

    def delete_agents(self, agent_ids: list[str]) -> None:
        """
        Single DELETE for the whole id set. Foreign keys are checked at the end of
        the statement, so a subtree goes in one request or not at all.
        """
        if not agent_ids:
            return
        self._run("delete_agents", self.client.table(AGENTS_TABLE).delete().in_("id", list(agent_ids)))


class SnapshotStore:
    """
    In-memory store over plain rows, optionally loaded from a JSON snapshot
    with keys programs, questions, registrations, agents.
    Rows are validated the same way as Supabase rows.
    """

    def __init__(self, programs=None, questions=None, registrations=None, agents=None):
        self.programs = {r["id"]: dict(r) for r in programs or []}
        self.questions = [dict(r) for r in questions or []]
        self.registrations = {r["id"]: dict(r) for r in registrations or []}
        self.agents = {r["id"]: dict(r) for r in agents or []}

    @classmethod
    def from_file(cls, path: str | Path) -> "SnapshotStore":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot not found: {path}")
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls(
            programs=data.get("programs"),
            questions=data.get("questions"),
            registrations=data.get("registrations"),
            agents=data.get("agents"),
        )

    def to_dict(self) -> dict:
        return {
            "programs": list(self.programs.values()),
            "questions": list(self.questions),
            "registrations": list(self.registrations.values()),
            "agents": list(self.agents.values()),
        }

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path

    def fetch_program(self, program_id: str) -> Program:
        if program_id not in self.programs:
            raise NotFoundError(f"Program not found: {program_id}")
        return parse_program(self.programs[program_id])

    def fetch_programs(self, division_id: str | None = None) -> list[Program]:
        rows = [
            r for r in self.programs.values()
            if r.get("is_active", True) is not False
            and (division_id is None or r.get("division_id") == division_id)
        ]
        return [parse_program(r) for r in sorted(rows, key=lambda r: r.get("name", ""))]

    def update_program(self, program_id: str, changes: dict) -> Program:
        if program_id not in self.programs:
            raise NotFoundError(f"Program not found: {program_id}")
        row = {**self.programs[program_id], **changes}
        validate_row("program", row)
        self.programs[program_id] = row
        return parse_program(row)

    def fetch_questions(self, program_id: str) -> list[FormQuestion]:
        rows = [r for r in self.questions if r["program_id"] == program_id]
        return [parse_question(r) for r in sorted(rows, key=lambda r: r.get("sort_order") or 0)]

    def fetch_registrations(self, program_id: str) -> list[Registration]:
        rows = [r for r in self.registrations.values() if r["program_id"] == program_id]
        rows.sort(key=lambda r: created_at_sort_key(r.get("created_at")), reverse=True)
        return [parse_registration(r) for r in rows]

    def fetch_registration(self, registration_id: str) -> Registration:
        if registration_id not in self.registrations:
            raise NotFoundError(f"Registration not found: {registration_id}")
        return parse_registration(self.registrations[registration_id])

    def fetch_agents(self, scope_filter: dict | None = None) -> list[Agent]:
        scope_filter = scope_filter or {}
        rows = [
            r for r in self.agents.values()
            if all(r.get(k) == v for k, v in scope_filter.items())
        ]
        return [parse_agent(r) for r in rows]

    def persist_verification(self, registration_id: str, result: VerificationResult) -> None:
        if registration_id not in self.registrations:
            raise NotFoundError(f"Registration not found: {registration_id}")
        self.registrations[registration_id].update(result.to_row())

    def persist_agent(self, agent: Agent) -> None:
        row = agent.to_row()
        validate_row("agent", row)
        self.agents[agent.id] = row

    def update_agent_parents(self, updates: list[tuple[str, str | None]]) -> None:
        for agent_id, parent_id in updates:
            if agent_id not in self.agents:
                raise NotFoundError(f"Agent not found: {agent_id}")
            self.agents[agent_id]["parent_agent_id"] = parent_id

    def delete_agents(self, agent_ids: list[str]) -> None:
        for agent_id in agent_ids:
            self.agents.pop(agent_id, None)
