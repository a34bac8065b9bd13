"""
Supabase database integration module.

Handles all database operations the alert pipeline needs:
- Claiming and completing alert jobs (RPCs on the job queue)
- Loading approved listings and their media
- Loading buyers with alerts enabled, joined with their profiles
- Subscription and feature lookups for entitlement checks
- Writing alert records and audit log entries

Tables and RPCs used:
- get_pending_alert_jobs / mark_alert_job_processing / mark_alert_job_completed
- property_listings: Listings (only approved ones are alerted)
- user_preferences + profiles: Buyer alert preferences and subscription tier
- feature_configurations: Per-tier feature switches
- property_alerts: One row per dispatch attempt
- audit_logs: Append-only audit trail
"""

import logging
from typing import Optional
from supabase import create_client, Client

from .config import get_supabase_config
from .errors import JobStoreError, MalformedRecordError
from .models import (
    AlertCandidate,
    AlertJob,
    AlertRecord,
    AlertStatus,
    AlertType,
    AuditEntry,
    PropertyListing,
    BUYER_ROLE,
    LISTING_STATUS_APPROVED,
)

logger = logging.getLogger(__name__)

CANDIDATE_COLUMNS = """
    user_id,
    property_alerts,
    email_notifications,
    budget_range,
    preferred_areas,
    property_type_preferences,
    profiles!inner (
        id,
        email,
        full_name,
        role,
        subscription_tier
    )
"""


class Database:
    """
    Supabase database client wrapper.

    Provides methods for all database operations needed by the alert pipeline.
    """

    def __init__(self, client: Optional[Client] = None):
        """Initialize Supabase client (or wrap an existing one)."""
        if client is None:
            config = get_supabase_config()
            if not config.url or not config.key:
                raise ValueError("Supabase URL and key must be set in environment variables")
            client = create_client(config.url, config.key)
        self._client: Client = client

    @property
    def client(self) -> Client:
        """Get the Supabase client."""
        return self._client

    # =========================================================================
    # JOB STORE
    # =========================================================================

    def get_pending_jobs(self, limit: int) -> list[AlertJob]:
        """
        Fetch up to `limit` pending alert jobs, oldest first.

        Raises:
            JobStoreError: if the RPC fails
        """
        try:
            result = self._client.rpc("get_pending_alert_jobs", {"limit_count": limit}).execute()
        except Exception as e:
            raise JobStoreError(f"Failed to fetch pending jobs: {e}") from e

        jobs = []
        for row in result.data or []:
            try:
                jobs.append(AlertJob.from_dict(row))
            except MalformedRecordError as e:
                logger.warning(f"Skipping malformed alert job row: {e}")

        logger.info(f"Fetched {len(jobs)} pending alert jobs")
        return jobs

    def mark_job_processing(self, job_id: str) -> bool:
        """
        Atomically claim a job.

        Returns:
            True if this caller now holds the job, False if it was already locked
        """
        result = self._client.rpc("mark_alert_job_processing", {"job_id": job_id}).execute()
        return result.data is not False

    def mark_job_completed(self, job_id: str, error_msg: Optional[str] = None) -> None:
        """Mark a job completed, with an optional job-level error message."""
        params = {"job_id": job_id}
        if error_msg:
            params["error_msg"] = error_msg
        self._client.rpc("mark_alert_job_completed", params).execute()
        if error_msg:
            logger.info(f"Completed job {job_id} with error: {error_msg}")
        else:
            logger.debug(f"Completed job {job_id}")

    # =========================================================================
    # LISTINGS
    # =========================================================================

    def get_approved_listing(self, property_id: str) -> Optional[PropertyListing]:
        """Get a listing by ID, only if it is approved."""
        result = (
            self._client.table("property_listings")
            .select("*")
            .eq("id", property_id)
            .eq("status", LISTING_STATUS_APPROVED)
            .execute()
        )
        if not result.data:
            return None
        return PropertyListing.from_dict(result.data[0])

    def get_listing_media(self, property_id: str) -> dict:
        """Get images and features of a listing (empty lists if none)."""
        result = (
            self._client.table("property_listings")
            .select("images, features")
            .eq("id", property_id)
            .execute()
        )
        row = result.data[0] if result.data else {}
        return {
            "images": row.get("images") or [],
            "features": row.get("features") or [],
        }

    # =========================================================================
    # BUYERS & ENTITLEMENTS
    # =========================================================================

    def get_alert_candidates(self) -> list[AlertCandidate]:
        """
        Get buyers with property alerts and email notifications enabled.

        Malformed join rows are skipped with a warning; a failing query raises.
        """
        result = (
            self._client.table("user_preferences")
            .select(CANDIDATE_COLUMNS)
            .eq("property_alerts", True)
            .eq("email_notifications", True)
            .filter("profiles.role", "eq", BUYER_ROLE)
            .execute()
        )

        candidates = []
        for row in result.data or []:
            try:
                candidates.append(AlertCandidate.from_row(row))
            except MalformedRecordError as e:
                logger.warning(f"Skipping buyer {row.get('user_id')!r}: {e}")

        return candidates

    def get_subscription_tier(self, user_id: str) -> Optional[str]:
        """Get a user's subscription tier, None if the profile does not exist."""
        result = (
            self._client.table("profiles")
            .select("subscription_tier")
            .eq("id", user_id)
            .execute()
        )
        if not result.data:
            return None
        return result.data[0].get("subscription_tier")

    def get_feature_flag(self, feature_key: str) -> Optional[bool]:
        """Get premium_tier_enabled for a feature, None if it is not configured."""
        result = (
            self._client.table("feature_configurations")
            .select("premium_tier_enabled")
            .eq("feature_key", feature_key)
            .execute()
        )
        if not result.data:
            return None
        return bool(result.data[0].get("premium_tier_enabled"))

    # =========================================================================
    # OUTCOMES
    # =========================================================================

    def insert_alert_record(self, record: AlertRecord) -> None:
        """Append a property_alerts row."""
        self._client.table("property_alerts").insert(record.to_dict()).execute()
        logger.debug(
            f"Recorded {record.status.value} alert for buyer {record.buyer_id} "
            f"on property {record.property_id}"
        )

    def has_delivered_alert(self, buyer_id: str, property_id: str, alert_type: AlertType) -> bool:
        """Check whether a sent/delivered alert already exists for this buyer and property."""
        result = (
            self._client.table("property_alerts")
            .select("id")
            .eq("buyer_id", buyer_id)
            .eq("property_id", property_id)
            .eq("alert_type", alert_type.value)
            .in_("status", [AlertStatus.SENT.value, AlertStatus.DELIVERED.value])
            .limit(1)
            .execute()
        )
        return len(result.data) > 0

    def insert_audit_log(self, entry: AuditEntry) -> None:
        """Append an audit_logs row."""
        self._client.table("audit_logs").insert(entry.to_dict()).execute()


# Global database instance (lazy loaded)
_db: Optional[Database] = None


def get_db() -> Database:
    """Get database instance (singleton)."""
    global _db
    if _db is None:
        _db = Database()
    return _db
