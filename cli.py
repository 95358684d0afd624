#!/usr/bin/env python3
"""CLI for registration verification and agent hierarchy rollups."""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from programs_admin.audit import setup_app_logging
from programs_admin.data_access import SnapshotStore, SupabaseStore
from programs_admin.reports import VerificationReportPDF, export_csv
from programs_admin.service import (
    AgentService,
    ProgramService,
    VerificationDisabledError,
    VerificationService,
)
from programs_core.hierarchy import CycleDetectedError
from programs_core.scoring import InvalidScoreError


def _store(args: argparse.Namespace):
    if args.snapshot:
        if not Path(args.snapshot).exists():
            print(f"Error: snapshot not found: {args.snapshot}", file=sys.stderr)
            sys.exit(1)
        return SnapshotStore.from_file(args.snapshot)
    return SupabaseStore()


def _save_snapshot(args: argparse.Namespace, store) -> None:
    """Mutating commands write the snapshot back so later commands see the change."""
    if args.snapshot:
        store.save(args.snapshot)


def cmd_verify(args: argparse.Namespace) -> None:
    """Score one registration from a JSON file of question_id -> score."""
    scores_path = Path(args.scores)
    if not scores_path.exists():
        print(f"Error: scores file not found: {scores_path}", file=sys.stderr)
        sys.exit(1)
    scores = json.loads(scores_path.read_text(encoding="utf-8"))

    store = _store(args)
    try:
        result = VerificationService(store, require_complete=args.require_complete or None).verify(
            args.registration_id, scores, args.actor
        )
    except (InvalidScoreError, VerificationDisabledError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    _save_snapshot(args, store)

    if args.json:
        print(json.dumps({"registration_id": result.registration_id, **result.to_row()}, indent=2))
    else:
        print(f"Verified: {result.registration_id}")
        print(f"  Score: {result.total_score} / {result.max_score} ({result.percentage:.1f}%)")


def cmd_program(args: argparse.Namespace) -> None:
    """Toggle verification / active flags or rename a program."""
    changes = {}
    if args.verification:
        changes["verification_enabled"] = args.verification == "on"
    if args.active:
        changes["is_active"] = args.active == "on"
    if args.name:
        changes["name"] = args.name

    store = _store(args)
    try:
        program = ProgramService(store).update(args.program_id, changes, actor=args.actor)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    _save_snapshot(args, store)
    print(f"Program {program.id}: {program.name}")
    print(f"  verification_enabled: {program.verification_enabled}")
    print(f"  is_active: {program.is_active}")


def cmd_registrations(args: argparse.Namespace) -> None:
    rows = VerificationService(_store(args)).list_registrations(
        args.program_id, panchayath_id=args.panchayath_id
    )
    if args.json:
        print(json.dumps(rows, indent=2, default=str))
        return
    print(f"=== Registrations ({len(rows)}) ===")
    for row in rows:
        badge = row["badge"]
        label = badge["label"] if badge else "-"
        tier = f" [{badge['tier']}]" if badge and badge.get("tier") else ""
        print(f"  {row['created_at'] or '-':<25} {row['name'] or '-':<30} {label}{tier}")


def cmd_rollup(args: argparse.Namespace) -> None:
    scope = {"panchayath_id": args.panchayath_id} if args.panchayath_id else None
    try:
        rows = AgentService(_store(args)).rollup(scope)
    except CycleDetectedError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    if args.json:
        print(json.dumps(rows, indent=2))
        return
    print("=== Customer rollup ===")
    for row in rows:
        print(
            f"  {row['role_label']:<13} {row['name']:<30} "
            f"reports={row['direct_report_count']:<4} customers={row['total_customers']}"
        )


def cmd_integrity(args: argparse.Namespace) -> None:
    """Exit 1 when any structural issue is found."""
    issues = AgentService(_store(args)).integrity()
    if args.json:
        print(json.dumps(issues, indent=2))
    elif not issues:
        print("Agent hierarchy OK")
    else:
        print(f"=== {len(issues)} issue(s) ===")
        for issue in issues:
            print(f"  {issue['kind']:<22} {issue['agent_id']}: {issue['detail']}")
    sys.exit(1 if issues else 0)


def cmd_report(args: argparse.Namespace) -> None:
    store = _store(args)
    program = store.fetch_program(args.program_id)
    rows = VerificationService(store).list_registrations(args.program_id)
    if not args.pdf and not args.csv:
        print("Error: pass --pdf and/or --csv", file=sys.stderr)
        sys.exit(1)
    if args.pdf:
        VerificationReportPDF(args.pdf).build(program, rows)
        print(f"PDF report: {args.pdf}")
    if args.csv:
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        args.csv.write_text(export_csv(rows, store.fetch_questions(program.id)), encoding="utf-8")
        print(f"CSV export: {args.csv}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Program verification and agent hierarchy tools")
    parser.add_argument("--snapshot", help="JSON snapshot to use instead of Supabase")
    sub = parser.add_subparsers(dest="command", required=True)

    p_verify = sub.add_parser("verify", help="Score a registration against its program's questions")
    p_verify.add_argument("registration_id")
    p_verify.add_argument("--scores", required=True, help="JSON file: {question_id: 0..10}")
    p_verify.add_argument("--actor", help="Verifier identity recorded as verified_by")
    p_verify.add_argument("--require-complete", action="store_true", help="Reject unscored questions")
    p_verify.add_argument("--json", action="store_true", help="Output JSON")
    p_verify.set_defaults(func=cmd_verify)

    p_program = sub.add_parser("program", help="Update program settings")
    p_program.add_argument("program_id")
    p_program.add_argument("--verification", choices=["on", "off"], help="Turn registration verification on or off")
    p_program.add_argument("--active", choices=["on", "off"], help="Activate or deactivate the program")
    p_program.add_argument("--name", help="Rename the program")
    p_program.add_argument("--actor", help="Admin identity recorded in the audit log")
    p_program.set_defaults(func=cmd_program)

    p_regs = sub.add_parser("registrations", help="List registrations with verification badges")
    p_regs.add_argument("--program-id", help="Program (default: every active program)")
    p_regs.add_argument("--panchayath-id", help="Only registrations from this panchayath")
    p_regs.add_argument("--json", action="store_true", help="Output JSON")
    p_regs.set_defaults(func=cmd_registrations)

    p_rollup = sub.add_parser("rollup", help="Total customers per agent")
    p_rollup.add_argument("--panchayath-id", help="Only agents in this panchayath")
    p_rollup.add_argument("--json", action="store_true", help="Output JSON")
    p_rollup.set_defaults(func=cmd_rollup)

    p_integrity = sub.add_parser("integrity", help="Check the agent tree for structural problems")
    p_integrity.add_argument("--json", action="store_true", help="Output JSON")
    p_integrity.set_defaults(func=cmd_integrity)

    p_report = sub.add_parser("report", help="Verification report for a program")
    p_report.add_argument("program_id")
    p_report.add_argument("--pdf", type=Path, help="Write PDF report here")
    p_report.add_argument("--csv", type=Path, help="Write CSV export here")
    p_report.set_defaults(func=cmd_report)

    args = parser.parse_args()
    setup_app_logging()
    args.func(args)


if __name__ == "__main__":
    main()
