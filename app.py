#!/usr/bin/env python3
"""Flask JSON API over the verification and agent hierarchy engines."""

import os
from io import BytesIO

from flask import Flask, jsonify, request, send_file
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from programs_admin.audit import audit_log, setup_app_logging
from programs_admin.config import ConfigError
from programs_admin.data_access import DataAccessError, NotFoundError, SnapshotStore, SupabaseStore
from programs_admin.reports import VerificationReportPDF, export_csv
from programs_admin.service import (
    AgentService,
    ProgramService,
    VerificationDisabledError,
    VerificationService,
)
from programs_core.hierarchy import (
    AgentHasReportsError,
    CycleDetectedError,
    DeletionPolicy,
    PlacementError,
)
from programs_core.scoring import InvalidScoreError
from programs_core.validation import RecordValidationError

load_dotenv()

log = setup_app_logging()

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 1 * 1024 * 1024  # 1MB


def _store():
    """Store set on app.config["STORE"], a JSON snapshot (SNAPSHOT_PATH), or Supabase."""
    store = app.config.get("STORE")
    if store is None:
        snapshot = os.environ.get("SNAPSHOT_PATH", "").strip()
        store = SnapshotStore.from_file(snapshot) if snapshot else SupabaseStore()
        app.config["STORE"] = store
    return store


def _json_body() -> dict | None:
    """Request JSON as an object; None when the body is some other JSON value."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _scope_filter() -> dict:
    allowed = ("panchayath_id", "ward", "role", "parent_agent_id")
    return {k: request.args[k] for k in allowed if request.args.get(k)}


@app.errorhandler(NotFoundError)
def _not_found(e):
    return jsonify({"error": str(e), "code": "NOT_FOUND"}), 404


@app.errorhandler(RecordValidationError)
def _bad_record(e):
    log.error("Stored row failed validation: %s", e)
    return jsonify({"error": str(e), "code": "INVALID_RECORD"}), 502


@app.errorhandler(DataAccessError)
def _data_access(e):
    log.error("Data access failed: %s", e)
    return jsonify({"error": str(e), "code": "DATA_ACCESS"}), 502


@app.errorhandler(ConfigError)
def _config(e):
    log.error("Configuration error: %s", e)
    return jsonify({"error": str(e), "code": "CONFIG"}), 500


@app.errorhandler(Exception)
def _unexpected(e):
    if isinstance(e, HTTPException):
        return e
    audit_log(
        request.endpoint or "request",
        "error",
        error=str(e),
        extra={"path": request.path, "error_type": type(e).__name__},
    )
    log.exception("Request failed: %s %s", request.method, request.path)
    return jsonify({"error": str(e), "code": "INTERNAL"}), 500


@app.route("/health")
def health():
    return jsonify({"status": "ok"})


@app.route("/api/registrations/<registration_id>/verify", methods=["POST"])
def api_verify(registration_id):
    """Score a registration. Body: {"scores": {question_id: 0..10}, "actor": "..."}."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    scores = data.get("scores")
    actor = (data.get("actor") or "").strip() or None

    if not isinstance(scores, dict):
        return jsonify({"error": "scores must be an object of question_id -> score"}), 400

    log.info("Verify started: registration=%s questions_scored=%d", registration_id, len(scores))
    try:
        result = VerificationService(_store()).verify(registration_id, scores, actor)
    except InvalidScoreError as e:
        log.warning("Verify rejected: %s", e)
        return jsonify({"error": str(e), "code": "INVALID_SCORE", "question_id": e.question_id}), 400
    except VerificationDisabledError as e:
        audit_log("verify", "error", actor=actor, registration_id=registration_id, error=str(e))
        return jsonify({"error": str(e), "code": "VERIFICATION_DISABLED"}), 409
    return jsonify(
        {
            "registration_id": result.registration_id,
            **result.to_row(),
        }
    )


@app.route("/api/programs/<program_id>", methods=["PATCH"])
def api_program_update(program_id):
    """Update program settings. Body: {"verification_enabled": bool, "is_active": bool, "name": str, "actor": "..."}."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    actor = data.pop("actor", None)
    try:
        program = ProgramService(_store()).update(program_id, data, actor=actor)
    except ValueError as e:
        audit_log("program_update", "rejected", actor=actor, program_id=program_id, error=str(e))
        return jsonify({"error": str(e)}), 400
    return jsonify(
        {
            "id": program.id,
            "name": program.name,
            "verification_enabled": program.verification_enabled,
            "is_active": program.is_active,
            "division_id": program.division_id,
        }
    )


@app.route("/api/programs/<program_id>/registrations")
def api_registrations(program_id):
    rows = VerificationService(_store()).list_registrations(
        program_id, panchayath_id=request.args.get("panchayath_id") or None
    )
    return jsonify({"registrations": rows, "count": len(rows)})


@app.route("/api/registrations")
def api_all_registrations():
    """Registrations across every active program (optionally one division / panchayath)."""
    rows = VerificationService(_store()).list_registrations(
        None,
        panchayath_id=request.args.get("panchayath_id") or None,
        division_id=request.args.get("division_id") or None,
    )
    return jsonify({"registrations": rows, "count": len(rows)})


@app.route("/api/programs/<program_id>/report.<fmt>")
def api_program_report(program_id, fmt):
    store = _store()
    program = store.fetch_program(program_id)
    rows = VerificationService(store).list_registrations(program_id)
    if fmt == "csv":
        body = export_csv(rows, store.fetch_questions(program_id))
        return send_file(
            BytesIO(body.encode("utf-8")),
            mimetype="text/csv",
            as_attachment=True,
            download_name=f"{program_id}_registrations.csv",
        )
    if fmt == "pdf":
        pdf_bytes = VerificationReportPDF().build(program, rows)
        audit_log("report_pdf", "success", program_id=program_id, extra={"pdf_bytes": len(pdf_bytes)})
        return send_file(
            BytesIO(pdf_bytes),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=f"{program_id}_verification_report.pdf",
        )
    return jsonify({"error": f"Unsupported report format: {fmt}"}), 404


@app.route("/api/agents/rollup")
def api_agents_rollup():
    try:
        rows = AgentService(_store()).rollup(_scope_filter())
    except CycleDetectedError as e:
        log.error("Rollup aborted: %s", e)
        return jsonify({"error": str(e), "code": "CYCLE_DETECTED", "path": e.path}), 409
    return jsonify({"agents": rows, "count": len(rows)})


@app.route("/api/agents/integrity")
def api_agents_integrity():
    issues = AgentService(_store()).integrity(_scope_filter())
    return jsonify({"issues": issues, "count": len(issues)})


@app.route("/api/agents/<agent_id>")
def api_agent_details(agent_id):
    try:
        return jsonify(AgentService(_store()).details(agent_id))
    except CycleDetectedError as e:
        return jsonify({"error": str(e), "code": "CYCLE_DETECTED", "path": e.path}), 409


@app.route("/api/agents", methods=["POST"])
def api_agent_create():
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    actor = data.pop("actor", None)
    try:
        agent = AgentService(_store()).create(data, actor=actor)
    except PlacementError as e:
        audit_log("agent_create", "rejected", actor=actor, error=str(e))
        return jsonify({"error": str(e), "code": type(e).__name__}), 422
    except RecordValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_AGENT"}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(agent.to_row()), 201


@app.route("/api/agents/<agent_id>/move", methods=["POST"])
def api_agent_move(agent_id):
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    actor = data.get("actor")
    try:
        agent = AgentService(_store()).move(agent_id, data.get("parent_agent_id"), actor=actor)
    except PlacementError as e:
        audit_log("agent_move", "rejected", actor=actor, agent_id=agent_id, error=str(e))
        return jsonify({"error": str(e), "code": type(e).__name__}), 422
    except CycleDetectedError as e:
        audit_log("agent_move", "rejected", actor=actor, agent_id=agent_id, error=str(e))
        return jsonify({"error": str(e), "code": "CYCLE_DETECTED", "path": e.path}), 422
    return jsonify(agent.to_row())


@app.route("/api/agents/<agent_id>", methods=["DELETE"])
def api_agent_delete(agent_id):
    policy = request.args.get("policy", DeletionPolicy.REJECT.value)
    new_parent_id = request.args.get("new_parent_id") or None
    actor = request.args.get("actor") or None
    if policy not in {p.value for p in DeletionPolicy}:
        return jsonify({"error": f"Unknown deletion policy: {policy}"}), 400
    try:
        plan = AgentService(_store()).delete(agent_id, policy, new_parent_id, actor=actor)
    except AgentHasReportsError as e:
        audit_log("agent_delete", "rejected", actor=actor, agent_id=agent_id, error=str(e))
        return jsonify({"error": str(e), "code": "HAS_REPORTS", "report_count": e.report_count}), 409
    except PlacementError as e:
        return jsonify({"error": str(e), "code": type(e).__name__}), 422
    except CycleDetectedError as e:
        audit_log("agent_delete", "error", actor=actor, agent_id=agent_id, error=str(e))
        return jsonify({"error": str(e), "code": "CYCLE_DETECTED", "path": e.path}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(plan)


if __name__ == "__main__":
    snapshot = os.getenv("SNAPSHOT_PATH", "").strip()
    supabase_set = bool(os.getenv("SUPABASE_URL", "").strip())
    log.info(
        "Programs admin API starting on http://127.0.0.1:5000 | SUPABASE_URL set: %s | snapshot: %s | Audit: logs/audit.log",
        supabase_set,
        snapshot or "-",
    )
    if not supabase_set and not snapshot:
        log.warning("Neither SUPABASE_URL nor SNAPSHOT_PATH is set - data requests will fail")
    app.run(debug=True, port=5000)
