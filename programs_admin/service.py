"""Orchestrates fetch -> compute -> persist for verification and agent management."""

import logging
import uuid
from dataclasses import asdict, replace
from datetime import datetime, timezone

from programs_admin import config
from programs_admin.audit import audit_log, log_verification
from programs_admin.data_access import NotFoundError
from programs_core.hierarchy import (
    AgentIndex,
    DeletionPolicy,
    agent_summary,
    direct_report_count,
    find_integrity_issues,
    plan_deletion,
    rollup_totals,
    validate_move,
    validate_placement,
)
from programs_core.models import ROLE_LABELS, Agent, Program, Registration, Role
from programs_core.scoring import VerificationResult, score, verification_badge
from programs_core.utils import created_at_sort_key
from programs_core.validation import parse_agent

log = logging.getLogger("programs_admin.service")


class VerificationDisabledError(RuntimeError):
    """Raised when verifying a registration whose program has verification turned off."""


def registration_view(registration: Registration, program: Program | None) -> dict:
    """Registration as the dashboard lists it: fixed fields, verification fields, badge."""
    fixed = registration.fixed_fields
    return {
        "id": registration.id,
        "program_id": registration.program_id,
        "program_name": program.name if program else "Unknown Program",
        "created_at": registration.created_at,
        "name": fixed.get("name"),
        "mobile": fixed.get("mobile"),
        "panchayath_id": fixed.get("panchayath_id"),
        "ward": fixed.get("ward"),
        "answers": {k: v for k, v in registration.answers.items() if k != "_fixed"},
        "verification_status": registration.verification_status,
        "verification_scores": registration.verification_scores,
        "total_score": registration.total_score,
        "max_score": registration.max_score,
        "percentage": registration.percentage,
        "verified_by": registration.verified_by,
        "verified_at": registration.verified_at,
        "badge": verification_badge(registration, program),
    }


class VerificationService:
    def __init__(self, store, require_complete: bool | None = None):
        self.store = store
        self.require_complete = (
            config.require_complete_scores() if require_complete is None else require_complete
        )

    def verify(
        self,
        registration_id: str,
        scores: dict,
        actor: str | None,
        now: datetime | None = None,
    ) -> VerificationResult:
        """
        Score a registration and persist the result. Validation errors propagate
        before anything is written; the registration stays as it was.
        """
        registration = self.store.fetch_registration(registration_id)
        program = self.store.fetch_program(registration.program_id)
        if not program.verification_enabled:
            raise VerificationDisabledError(
                f"Verification is not enabled for program {program.name}"
            )
        questions = self.store.fetch_questions(program.id)

        try:
            result = score(
                registration,
                questions,
                scores,
                actor=actor,
                now=now or datetime.now(timezone.utc),
                require_complete=self.require_complete,
            )
        except ValueError as e:
            audit_log(
                "verify",
                "rejected",
                actor=actor,
                program_id=program.id,
                registration_id=registration_id,
                error=str(e),
            )
            raise

        self.store.persist_verification(registration_id, result)
        audit_log(
            "verify",
            "success",
            actor=actor,
            program_id=program.id,
            registration_id=registration_id,
            extra={
                "total_score": result.total_score,
                "max_score": result.max_score,
                "percentage": result.percentage,
                "reverification": registration.is_verified,
            },
        )
        log_verification(
            result=result,
            program_id=program.id,
            previous_status=registration.verification_status,
        )
        log.info(
            "Verified registration=%s score=%d/%d (%.1f%%)",
            registration_id,
            result.total_score,
            result.max_score,
            result.percentage,
        )
        return result

    def list_registrations(
        self,
        program_id: str | None = None,
        panchayath_id: str | None = None,
        division_id: str | None = None,
    ) -> list[dict]:
        """Registrations for one program (or every active program), newest first."""
        if program_id:
            programs = [self.store.fetch_program(program_id)]
        else:
            programs = self.store.fetch_programs(division_id)

        rows = []
        for program in programs:
            for reg in self.store.fetch_registrations(program.id):
                if panchayath_id and reg.panchayath_id != panchayath_id:
                    continue
                rows.append((reg, program))

        rows.sort(key=lambda pair: created_at_sort_key(pair[0].created_at), reverse=True)
        return [registration_view(reg, program) for reg, program in rows]


PROGRAM_FLAGS = ("verification_enabled", "is_active")


class ProgramService:
    """Program settings edited from the admin program page."""

    def __init__(self, store):
        self.store = store

    def update(self, program_id: str, changes: dict, actor: str | None = None) -> Program:
        unknown = sorted(set(changes) - {"name", *PROGRAM_FLAGS})
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(unknown)}")
        if not changes:
            raise ValueError("No fields to update")
        for flag in PROGRAM_FLAGS:
            if flag in changes and not isinstance(changes[flag], bool):
                raise ValueError(f"{flag} must be true or false")
        if "name" in changes and not (isinstance(changes["name"], str) and changes["name"].strip()):
            raise ValueError("name must be a non-empty string")

        before = self.store.fetch_program(program_id)
        program = self.store.update_program(program_id, dict(changes))
        audit_log(
            "program_update",
            "success",
            actor=actor,
            program_id=program_id,
            extra={"changes": changes, "verification_enabled_before": before.verification_enabled},
        )
        log.info("Updated program %s: %s", program_id, ", ".join(sorted(changes)))
        return program


def _in_scope(agent: Agent, scope_filter: dict | None) -> bool:
    """Equality match on agent columns (role compares by value)."""
    for column, value in (scope_filter or {}).items():
        actual = getattr(agent, column, None)
        if isinstance(actual, Role):
            actual = actual.value
        if actual != value:
            return False
    return True


class AgentService:
    def __init__(self, store):
        self.store = store

    def _index(self) -> AgentIndex:
        return AgentIndex(self.store.fetch_agents())

    def _require(self, index: AgentIndex, agent_id: str) -> Agent:
        agent = index.get(agent_id)
        if agent is None:
            raise NotFoundError(f"Agent not found: {agent_id}")
        return agent

    def rollup(self, scope_filter: dict | None = None) -> list[dict]:
        """
        Per-agent totals, recomputed on every read.
        Totals always cover the whole tree; the scope only picks which agents are listed.
        """
        index = self._index()
        totals = rollup_totals(index)
        return [
            {
                "id": a.id,
                "name": a.name,
                "role": a.role.value,
                "role_label": ROLE_LABELS[a.role],
                "parent_agent_id": a.parent_agent_id,
                "direct_report_count": direct_report_count(a, index),
                "total_customers": totals[a.id],
            }
            for a in index.agents
            if _in_scope(a, scope_filter)
        ]

    def details(self, agent_id: str) -> dict:
        index = self._index()
        return agent_summary(self._require(index, agent_id), index)

    def integrity(self, scope_filter: dict | None = None) -> list[dict]:
        # checked over every agent so a scope boundary is never reported as an orphan
        agents = self.store.fetch_agents()
        scoped = {a.id for a in agents if _in_scope(a, scope_filter)}
        return [
            issue.to_dict()
            for issue in find_integrity_issues(agents)
            if issue.agent_id in scoped
        ]

    def create(self, row: dict, actor: str | None = None) -> Agent:
        row = {"id": row.get("id") or str(uuid.uuid4()), **{k: v for k, v in row.items() if k != "id"}}
        agent = parse_agent(row)
        if agent.role != Role.PRO and agent.customer_count:
            # customer_count is only meaningful on pro agents
            agent = replace(agent, customer_count=0)

        index = self._index()
        if index.get(agent.id) is not None:
            raise ValueError(f"Agent already exists: {agent.id}")
        parent = None
        if agent.parent_agent_id is not None:
            parent = self._require(index, agent.parent_agent_id)
        validate_placement(parent, agent.role)

        self.store.persist_agent(agent)
        audit_log("agent_create", "success", actor=actor, agent_id=agent.id, extra={"role": agent.role.value})
        log.info("Created %s %s under %s", agent.role.value, agent.id, agent.parent_agent_id)
        return agent

    def move(self, agent_id: str, new_parent_id: str | None, actor: str | None = None) -> Agent:
        index = self._index()
        agent = self._require(index, agent_id)
        new_parent = self._require(index, new_parent_id) if new_parent_id else None
        validate_move(agent, new_parent, index)

        self.store.update_agent_parents([(agent.id, new_parent_id)])
        audit_log(
            "agent_move",
            "success",
            actor=actor,
            agent_id=agent.id,
            extra={"from_parent": agent.parent_agent_id, "to_parent": new_parent_id},
        )
        return replace(agent, parent_agent_id=new_parent_id)

    def delete(
        self,
        agent_id: str,
        policy: DeletionPolicy | str = DeletionPolicy.REJECT,
        new_parent_id: str | None = None,
        actor: str | None = None,
    ) -> dict:
        index = self._index()
        agent = self._require(index, agent_id)
        new_parent = self._require(index, new_parent_id) if new_parent_id else None
        plan = plan_deletion(agent, index, DeletionPolicy(policy), new_parent)

        # reparent before delete: a failure between the two writes leaves the
        # agent in place with no reports, never children pointing at a deleted row
        if plan.reparent:
            self.store.update_agent_parents(plan.reparent)
        self.store.delete_agents(plan.delete_ids)

        summary = asdict(plan)
        summary["policy"] = plan.policy.value
        audit_log("agent_delete", "success", actor=actor, agent_id=agent.id, extra=summary)
        log.info("Deleted agent %s (%s, %d row(s))", agent.id, plan.policy.value, len(plan.delete_ids))
        return summary
