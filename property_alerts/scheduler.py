"""
Scheduler module for Property Alerts.

Uses APScheduler to process pending alert jobs on a fixed interval. Each
tick handles one bounded batch; overlapping ticks are prevented so a slow
batch simply delays the next one.

Can also be run once via command line.
"""

import logging
from typing import Optional
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import get_app_config
from .pipeline import run_batch

logger = logging.getLogger(__name__)


def create_scheduler(poll_minutes: Optional[int] = None) -> BlockingScheduler:
    """
    Create and configure the APScheduler.

    Jobs:
    1. process_property_alerts: every `poll_minutes` - process one batch of alert jobs

    Returns:
        Configured BlockingScheduler
    """
    minutes = poll_minutes or get_app_config().poll_minutes
    scheduler = BlockingScheduler()

    scheduler.add_job(
        run_batch_job,
        trigger=IntervalTrigger(minutes=minutes),
        id="process_property_alerts",
        name="Process pending property alert jobs",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info(f"Scheduler configured to process alerts every {minutes} minutes")
    return scheduler


def run_batch_job() -> None:
    """Wrapper for one batch to handle logging."""
    result = run_batch()
    if result["status"] == "success":
        logger.info(f"Alert batch finished: {result}")
    else:
        logger.error(f"Alert batch failed: {result.get('error')}")


def start_scheduler(poll_minutes: Optional[int] = None) -> None:
    """Start the scheduler (blocking)."""
    scheduler = create_scheduler(poll_minutes)

    logger.info("Starting Property Alerts scheduler...")
    logger.info("Press Ctrl+C to stop")

    # Drain anything already queued before the first tick
    run_batch_job()

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """CLI entry point for the scheduler."""
    import argparse

    parser = argparse.ArgumentParser(description="Property Alerts Scheduler")
    parser.add_argument(
        "--mode",
        choices=["schedule", "once"],
        default="schedule",
        help="Mode to run: schedule (continuous) or once (single batch)"
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Minutes between batches (default: ALERT_POLL_MINUTES)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level"
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if args.mode == "schedule":
        start_scheduler(args.interval)
    else:
        logger.info("Running single alert batch...")
        run_batch_job()


if __name__ == "__main__":
    main()
