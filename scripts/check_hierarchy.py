#!/usr/bin/env python3
"""
Audit the live agent table for structural problems; exit 1 if any are found.
Usage: python scripts/check_hierarchy.py [--panchayath-id ID] [--snapshot path] [--json]
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

from programs_admin.data_access import SnapshotStore, SupabaseStore
from programs_admin.service import AgentService


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("--panchayath-id", help="Only report agents in this panchayath")
    parser.add_argument("--snapshot", help="JSON snapshot to check instead of Supabase")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    args = parser.parse_args(argv)

    load_dotenv()
    if args.snapshot:
        if not Path(args.snapshot).exists():
            print(f"Error: snapshot not found: {args.snapshot}", file=sys.stderr)
            sys.exit(1)
        store = SnapshotStore.from_file(args.snapshot)
    else:
        store = SupabaseStore()

    scope = {"panchayath_id": args.panchayath_id} if args.panchayath_id else None
    issues = AgentService(store).integrity(scope)

    if args.json:
        print(json.dumps(issues, indent=2))
    elif issues:
        print("\n=== HIERARCHY ISSUES ===\n")
        for issue in issues:
            print(f"{issue['kind']}: {issue['agent_id']} - {issue['detail']}")
        print(f"\nHierarchy check FAILED: {len(issues)} issue(s).")
    else:
        print("Hierarchy check PASSED: no issues.")

    sys.exit(1 if issues else 0)


if __name__ == "__main__":
    main()
