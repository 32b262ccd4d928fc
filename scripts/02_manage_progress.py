#!/usr/bin/env python3
"""
02_manage_progress.py - Back-office commands on the progression ledger.

Every command prints its result as JSON. Policy rejections are printed as
{"error": ..., "detail": ...} with exit status 2; a concurrent write exits
with status 3 and can simply be retried.

Usage:
  python scripts/02_manage_progress.py check --student s1 --curriculum english_general
  python scripts/02_manage_progress.py promote --student s1 --curriculum english_general
  python scripts/02_manage_progress.py group-preview --group g1
  python scripts/02_manage_progress.py group-commit --group g1 --token <token> --students s1 s2
  python scripts/02_manage_progress.py add-credit --students s1 s2 --curriculum english_general --days 30
  python scripts/02_manage_progress.py report --curriculum english_general
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Project root for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import BaseModel

from eduledger.config import DEFAULT_ACTOR, DEFAULT_DB_PATH, LOG_LEVEL
from eduledger.classroom import (
    ConcurrencyConflictError,
    GroupPromoter,
    LedgerError,
    LedgerStore,
    ProgressReporter,
    PromotionEngine,
    SubscriptionLedger,
)

# Setup logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def emit(result):
    if isinstance(result, BaseModel):
        print(result.model_dump_json(indent=2))
    elif isinstance(result, list):
        print(json.dumps([r.model_dump(mode="json") for r in result], indent=2, ensure_ascii=False))
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def run_command(args, engine: PromotionEngine):
    groups = GroupPromoter(engine)
    ledger = SubscriptionLedger(engine.store, clock=engine.clock, actor=engine.actor)
    reporter = ProgressReporter(engine)

    if args.command == "check":
        return engine.check_promotion(args.student, args.curriculum)
    if args.command == "promote":
        return engine.promote_student(args.student, args.curriculum)
    if args.command == "demote":
        return engine.demote_student(args.student, args.curriculum)
    if args.command == "reset":
        return engine.reset_student_progress(args.student, args.curriculum)
    if args.command == "group-preview":
        return groups.preview_group_promotion(args.group)
    if args.command == "group-promote":
        return groups.promote_group(args.group)
    if args.command == "group-commit":
        return groups.commit_group_promotion(
            args.group, args.token, student_ids=args.students, advance_group=args.advance_group
        )
    if args.command == "group-resume":
        if args.token:
            return groups.resume_group_promotion(args.token)
        return groups.list_incomplete_group_promotions()
    if args.command == "enroll":
        return ledger.enroll(args.student, args.curriculum, args.credit)
    if args.command == "activate":
        return ledger.activate_subscription(args.subscription)
    if args.command == "add-credit":
        return ledger.add_credit_days(args.students, args.curriculum, args.days, args.reason)
    if args.command == "report":
        if args.group:
            return reporter.group_progress_stats(args.group)
        if args.credit:
            return reporter.credit_overview(args.curriculum)
        if not args.curriculum:
            raise ValueError("report needs --curriculum, --group or --credit")
        return reporter.curriculum_progress_stats(args.curriculum)
    raise ValueError(f"Unknown command: {args.command}")


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Promote, demote and credit students in the progression ledger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/02_manage_progress.py check --student s1 --curriculum english_general
  python scripts/02_manage_progress.py group-commit --group g1 --token abc123 --advance-group
  python scripts/02_manage_progress.py group-resume
  python scripts/02_manage_progress.py report --credit
        """,
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=DEFAULT_DB_PATH,
        help=f"Ledger database path (default: {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--actor",
        default=DEFAULT_ACTOR,
        help=f"Name recorded on promotions and credit changes (default: {DEFAULT_ACTOR})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in [
        ("check", "Show whether a student can be promoted"),
        ("promote", "Promote a student to the next level"),
        ("demote", "Move a student back one level"),
        ("reset", "Send a student back to level 1"),
    ]:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--student", required=True)
        p.add_argument("--curriculum", required=True)

    p = sub.add_parser("group-preview", help="Readiness of every student in a group")
    p.add_argument("--group", required=True)

    p = sub.add_parser("group-promote", help="Promote a group if every student is ready, else preview")
    p.add_argument("--group", required=True)

    p = sub.add_parser("group-commit", help="Promote selected students of a group")
    p.add_argument("--group", required=True)
    p.add_argument("--token", required=True, help="Token from group-preview")
    p.add_argument("--students", nargs="+", help="Students to promote (default: those ready now)")
    p.add_argument("--advance-group", action="store_true", help="Also advance the group's level")

    p = sub.add_parser("group-resume", help="Resume an interrupted group commit, or list them")
    p.add_argument("--token")

    p = sub.add_parser("enroll", help="Create a pending subscription")
    p.add_argument("--student", required=True)
    p.add_argument("--curriculum", required=True)
    p.add_argument("--credit", type=int, default=0, help="Prepaid access-credit days")

    p = sub.add_parser("activate", help="Activate a pending subscription")
    p.add_argument("--subscription", required=True)

    p = sub.add_parser("add-credit", help="Top up access-credit days")
    p.add_argument("--students", nargs="+", required=True)
    p.add_argument("--curriculum", required=True)
    p.add_argument("--days", type=int, required=True)
    p.add_argument("--reason", default="")

    p = sub.add_parser("report", help="Progress or credit summary")
    p.add_argument("--curriculum")
    p.add_argument("--group")
    p.add_argument("--credit", action="store_true", help="Credit overview instead of progress")

    return parser


def main():
    args = build_parser().parse_args()
    engine = PromotionEngine(LedgerStore(args.db), actor=args.actor)

    try:
        result = run_command(args, engine)
    except ConcurrencyConflictError as e:
        logger.warning(f"Concurrent update, retry the command: {e}")
        emit({"error": type(e).__name__, "detail": str(e)})
        sys.exit(3)
    except (LedgerError, ValueError, KeyError) as e:
        emit({"error": type(e).__name__, "detail": str(e)})
        sys.exit(2)

    emit(result)


if __name__ == "__main__":
    main()
