"""
Main Pipeline module for Property Alerts.

Processes a bounded batch of pending alert jobs. For each job:
1. Claim → Atomically mark the job processing (skip it if already claimed)
2. Load → Fetch the approved listing and the buyers with alerts enabled
3. Gate → Check each buyer's subscription entitlement
4. Match → Score the listing against each entitled buyer's preferences
5. Alert → Email every matched buyer, recording each attempt
6. Log → Write the job's audit summary and mark it completed

Jobs and buyers are processed sequentially. A failure in one buyer never
stops the others; a failure in one job never stops the batch.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from .alerts import NotificationDispatcher
from .config import AppConfig, get_app_config
from .db import Database, get_db
from .entitlements import EntitlementGate
from .matching import AlertMatch, MatchEngine
from .models import (
    AlertCandidate,
    AlertJob,
    AlertStatus,
    JobOutcome,
    ProcessingSummary,
    PropertyListing,
)
from .outcomes import OutcomeRecorder

logger = logging.getLogger(__name__)

LISTING_NOT_FOUND = "Property not found or not approved"
BUYERS_FETCH_FAILED = "Failed to fetch buyers with alerts"


class AlertPipeline:
    """
    Orchestrates one alert processing run.

    Usage:
        pipeline = AlertPipeline()
        summary = pipeline.process_pending_jobs()
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        gate: Optional[EntitlementGate] = None,
        engine: Optional[MatchEngine] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        recorder: Optional[OutcomeRecorder] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or get_app_config()
        self.db = db or get_db()
        self.recorder = recorder or OutcomeRecorder(self.db)
        self.gate = gate or EntitlementGate(self.db, self.recorder, self.config)
        self.engine = engine or MatchEngine(
            threshold=self.config.match_threshold,
            default_min_budget=self.config.default_min_budget,
            default_max_budget=self.config.default_max_budget,
        )
        self.dispatcher = dispatcher or NotificationDispatcher(self.db, config=self.config)

    def process_pending_jobs(self, batch_size: Optional[int] = None) -> ProcessingSummary:
        """
        Process up to `batch_size` pending jobs.

        Raises:
            JobStoreError: if the pending jobs cannot be fetched
        """
        limit = batch_size or self.config.batch_size
        summary = ProcessingSummary()

        jobs = self.db.get_pending_jobs(limit)
        if not jobs:
            logger.info("No pending alert jobs")
            return summary

        for job in jobs:
            if not self._claim(job):
                summary.skipped_jobs += 1
                continue

            try:
                outcome = self.process_job(job)
            except Exception as e:
                logger.exception(f"Error processing job {job.id}: {e}")
                error = str(e) or e.__class__.__name__
                self._complete(job, error)
                outcome = JobOutcome(job_id=job.id, property_id=job.property_id, error=error)

            summary.add(outcome)

        logger.info(
            f"Batch complete: {summary.processed} processed, {summary.matches} matches, "
            f"{summary.alerts_sent} alerts sent, {summary.access_denied} access denied, "
            f"{summary.failed_jobs} failed, {summary.skipped_jobs} skipped"
        )
        return summary

    def process_job(self, job: AlertJob) -> JobOutcome:
        """
        Process one claimed job and mark it completed.

        Missing listings and buyer lookup failures complete the job with an
        error; anything else that raises is left to the caller.
        """
        outcome = JobOutcome(job_id=job.id, property_id=job.property_id)

        listing = self.db.get_approved_listing(job.property_id)
        if listing is None or not listing.is_approved:
            logger.warning(f"Job {job.id}: property {job.property_id} not found or not approved")
            outcome.error = LISTING_NOT_FOUND
            self._complete(job, outcome.error)
            return outcome

        try:
            candidates = self.db.get_alert_candidates()
        except Exception as e:
            logger.error(f"Job {job.id}: {BUYERS_FETCH_FAILED}: {e}")
            outcome.error = BUYERS_FETCH_FAILED
            self._complete(job, outcome.error)
            return outcome

        matches = self._find_matches(job, listing, candidates, outcome)
        outcome.matches_found = len(matches)

        for match in matches:
            self._deliver(job, match, outcome)

        self.recorder.log_processing(
            job.property_id,
            outcome.matches_found,
            outcome.alerts_sent,
            outcome.access_denied,
        )
        self._complete(job)

        logger.info(
            f"Processed job {job.id}: {outcome.matches_found} matches, "
            f"{outcome.alerts_sent} alerts sent, {outcome.access_denied} access denied"
        )
        return outcome

    def _find_matches(
        self,
        job: AlertJob,
        listing: PropertyListing,
        candidates: list[AlertCandidate],
        outcome: JobOutcome,
    ) -> list[AlertMatch]:
        matches = []
        for candidate in candidates:
            if not candidate.is_eligible:
                logger.debug(f"Skipping ineligible buyer {candidate.buyer_id}")
                continue

            if not self.gate.has_access(candidate.buyer_id, job.alert_type, job.property_id):
                outcome.access_denied += 1
                continue

            result = self.engine.evaluate(listing, candidate.preferences)
            if result.is_match:
                matches.append(AlertMatch(candidate=candidate, listing=listing, result=result))
        return matches

    def _deliver(self, job: AlertJob, match: AlertMatch, outcome: JobOutcome) -> None:
        if self.config.skip_duplicate_alerts and self.recorder.has_prior_delivery(
            match.buyer_id, job.property_id, job.alert_type
        ):
            logger.info(f"Buyer {match.buyer_id} already alerted for {job.property_id}, skipping")
            outcome.duplicates_skipped += 1
            return

        try:
            self.dispatcher.send(match, job.alert_type)
        except Exception as e:
            logger.error(f"Failed to send alert to buyer {match.buyer_id}: {e}")
            self.recorder.record_alert(match.buyer_id, job.property_id, AlertStatus.FAILED, job.alert_type)
            outcome.alerts_failed += 1
            return

        self.recorder.record_alert(match.buyer_id, job.property_id, AlertStatus.SENT, job.alert_type)
        outcome.alerts_sent += 1

    def _claim(self, job: AlertJob) -> bool:
        try:
            claimed = self.db.mark_job_processing(job.id)
        except Exception as e:
            logger.error(f"Error marking job {job.id} as processing: {e}")
            return False
        if not claimed:
            logger.info(f"Job {job.id} is already being processed, skipping")
        return claimed

    def _complete(self, job: AlertJob, error_msg: Optional[str] = None) -> None:
        try:
            self.db.mark_job_completed(job.id, error_msg)
        except Exception as e:
            logger.error(f"Failed to mark job {job.id} completed: {e}")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def process_pending_alerts(batch_size: Optional[int] = None) -> ProcessingSummary:
    """
    Convenience function to run one batch with the default collaborators.

    Args:
        batch_size: Maximum jobs to process (defaults to ALERT_BATCH_SIZE)

    Returns:
        ProcessingSummary
    """
    pipeline = AlertPipeline()
    return pipeline.process_pending_jobs(batch_size)


def run_batch(batch_size: Optional[int] = None) -> dict:
    """
    Run one batch and return a loggable summary dict.

    Used by the scheduler, which must keep running after a failed batch.
    """
    start_time = datetime.now(timezone.utc)
    try:
        summary = process_pending_alerts(batch_size)
    except Exception as e:
        logger.error(f"Alert batch failed: {e}")
        return {"status": "error", "error": str(e)}

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    return {"status": "success", "duration_seconds": duration, **summary.to_response()}


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """CLI entry point for running the pipeline."""
    import argparse

    parser = argparse.ArgumentParser(description="Property Alerts Pipeline")
    parser.add_argument(
        "--run",
        action="store_true",
        help="Process one batch of pending alert jobs"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Maximum jobs to process (default: ALERT_BATCH_SIZE)"
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

    if not args.run:
        parser.print_help()
        return

    try:
        summary = process_pending_alerts(args.batch_size)
    except Exception as e:
        logger.error(f"Property alert processing error: {e}")
        sys.exit(1)

    print(f"Pipeline complete: {summary.to_response()}")


if __name__ == "__main__":
    main()
