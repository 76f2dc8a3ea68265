"""Command-line entry point.

This module provides commands for preparing the database and exporting the
aggregate reports:

    python src/main.py init-db
    python src/main.py gradebook --csv gradebook.csv
    python src/main.py summary
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import List, Optional

import pytz

from core.database import SessionLocal, init_db
from core.exceptions import SkillTreeError
from core.logging_config import setup_logging
from utils.report_manager import ReportManager
from utils.seed import seed_admin, seed_catalog

logger = logging.getLogger(__name__)


def print_banner() -> None:
    """Print program banner."""
    print("=" * 70)
    print("  Skill Tree Progress Tracker")
    print("=" * 70)
    print()


def cmd_init_db(args: argparse.Namespace) -> int:
    init_db()
    with SessionLocal() as db:
        trees, nodes = seed_catalog(db)
        created_admin = False if args.no_admin else seed_admin(db)
    print(f"Skill trees added: {trees}")
    print(f"Skill nodes added: {nodes}")
    if created_admin:
        print("Default admin account created. PLEASE CHANGE THE DEFAULT PASSWORD!")
    return 0


def cmd_gradebook(args: argparse.Namespace) -> int:
    path = args.csv or f"gradebook_{datetime.now(pytz.utc):%Y-%m-%d}.csv"
    with SessionLocal() as db, open(path, "w", encoding="utf-8", newline="") as f:
        count = ReportManager(db).export_gradebook_csv(f)
    print(f"Wrote {count} rows to {path}")
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        summary = ReportManager(db).get_all_student_stats()

    if not summary:
        print("No students found")
        return 0

    print(f"{'Student':<24}{'Completed':>10}{'In Progress':>13}{'Started':>9}{'Points':>8}")
    print("-" * 64)
    for s in summary:
        print(
            f"{s.username:<24}{s.completed_nodes:>10}{s.in_progress_nodes:>13}"
            f"{s.total_started:>9}{s.earned_points:>8}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Skill Tree progress tracker")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create tables and seed the catalog")
    init_parser.add_argument(
        "--no-admin", action="store_true", help="Do not create the default admin"
    )
    init_parser.set_defaults(func=cmd_init_db)

    gradebook_parser = subparsers.add_parser("gradebook", help="Export the gradebook as CSV")
    gradebook_parser.add_argument("--csv", default=None, help="Output file path")
    gradebook_parser.set_defaults(func=cmd_gradebook)

    summary_parser = subparsers.add_parser("summary", help="Print per-student totals")
    summary_parser.set_defaults(func=cmd_summary)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    print_banner()
    try:
        return args.func(args)
    except SkillTreeError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
