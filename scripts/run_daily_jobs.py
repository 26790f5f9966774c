"""
Daily jobs: seven-day reminder sweep and recurring order generation.

Meant to run once a day from cron. Both jobs are safe to re-run.

Usage:
    # Both jobs for today
    python scripts/run_daily_jobs.py

    # Only the reminder sweep, as if it were a given day
    python scripts/run_daily_jobs.py --sweep --date 2025-03-10

    # Only recurring orders
    python scripts/run_daily_jobs.py --recurring
"""

import argparse
import os
import sys
from datetime import datetime, timezone

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

import structlog

from services.client_order_service import get_client_order_service
from services.client_service import get_client_service

logger = structlog.get_logger(__name__)


def run_jobs(sweep: bool, recurring: bool, run_at: datetime) -> dict:
    """Run the selected jobs and return per-job counts."""
    summary = {}

    if sweep:
        summary["reminders_flagged"] = get_client_order_service().run_reminder_sweep(run_at.date())

    if recurring:
        drafts = get_client_service().run_recurring(run_at)
        summary["recurring_drafts"] = len(drafts)

    logger.info("daily_jobs_complete", run_at=run_at.isoformat(), **summary)
    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Run the daily reminder sweep and recurring order generation."
    )
    parser.add_argument(
        "--sweep",
        action="store_true",
        help="Run only the seven-day reminder sweep",
    )
    parser.add_argument(
        "--recurring",
        action="store_true",
        help="Run only recurring order generation",
    )
    parser.add_argument(
        "--date",
        default="",
        help="Pretend today is this date (YYYY-MM-DD)",
    )

    args = parser.parse_args()

    # Neither flag means both jobs
    sweep = args.sweep or not args.recurring
    recurring = args.recurring or not args.sweep

    if args.date:
        try:
            run_at = datetime.strptime(args.date, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            print(f"ERROR: Invalid date format '{args.date}'. Use YYYY-MM-DD.")
            sys.exit(1)
    else:
        run_at = datetime.now(timezone.utc)

    try:
        summary = run_jobs(sweep, recurring, run_at)
    except Exception as e:
        logger.error("daily_jobs_failed", error=str(e), error_type=type(e).__name__)
        print(f"ERROR: {e}")
        sys.exit(1)

    for name, count in summary.items():
        print(f"✓ {name}: {count}")


if __name__ == "__main__":
    main()
