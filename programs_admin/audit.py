"""Audit trail for verification acts and agent mutations."""

import csv
import json
import logging

from programs_admin import config
from programs_core.scoring import VerificationResult, classify
from programs_core.utils import iso_now

VERIFICATION_CSV_HEADERS = [
    "timestamp",
    "registration_id",
    "program_id",
    "verified_by",
    "verified_at",
    "question_count",
    "total_score",
    "max_score",
    "percentage",
    "tier",
    "previous_status",
    "scores",
]


def _ensure_log_dir():
    path = config.audit_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def log_verification(
    *,
    result: VerificationResult,
    program_id: str,
    previous_status: str,
):
    """
    Record one verification act: who scored what and how it classified.
    Appends to verifications.jsonl and verifications.csv. Re-verification adds
    a new row here; the registration row itself only keeps the latest result.
    """
    log_dir = _ensure_log_dir()
    entry = {
        "timestamp": iso_now(),
        "registration_id": result.registration_id,
        "program_id": program_id,
        "verified_by": result.verified_by,
        "verified_at": result.verified_at,
        "question_count": len(result.scores),
        "total_score": result.total_score,
        "max_score": result.max_score,
        "percentage": round(result.percentage, 1),
        "tier": classify(result.percentage).value,
        "previous_status": previous_status,
        "scores": result.scores,
    }

    with open(log_dir / "verifications.jsonl", "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, default=str) + "\n")

    csv_path = log_dir / "verifications.csv"
    csv_exists = csv_path.exists()
    with open(csv_path, "a", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=VERIFICATION_CSV_HEADERS)
        if not csv_exists:
            writer.writeheader()
        writer.writerow({**entry, "verified_by": entry["verified_by"] or "", "scores": json.dumps(result.scores)})


def audit_log(
    action: str,
    status: str,
    *,
    actor: str | None = None,
    program_id: str | None = None,
    registration_id: str | None = None,
    agent_id: str | None = None,
    error: str | None = None,
    extra: dict | None = None,
):
    """Append a structured audit entry to the audit log (JSONL)."""
    log_dir = _ensure_log_dir()
    entry = {
        "timestamp": iso_now(),
        "action": action,
        "status": status,
    }
    if actor:
        entry["actor"] = actor
    if program_id:
        entry["program_id"] = program_id
    if registration_id:
        entry["registration_id"] = registration_id
    if agent_id:
        entry["agent_id"] = agent_id
    if error:
        entry["error"] = error
    if extra:
        entry.update(extra)

    with open(log_dir / "audit.log", "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, default=str) + "\n")


def setup_app_logging():
    """Configure application logging to console and file."""
    log_dir = _ensure_log_dir()
    logger = logging.getLogger("programs_admin")
    if logger.handlers:
        return logger
    logger.setLevel(logging.DEBUG)

    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(config.log_level())
    ch.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    logger.addHandler(ch)

    # File
    fh = logging.FileHandler(log_dir / "app.log", encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    logger.addHandler(fh)

    return logger
