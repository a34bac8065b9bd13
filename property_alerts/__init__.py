"""
Property Alerts - Alert Matching & Notification Pipeline

Whenever a listing becomes available, decides which subscribed buyers should
hear about it, checks their subscription entitlement, emails the matches and
records an auditable outcome.

Modules:
- config: Configuration and environment variables
- errors: Exception types
- models: Data models (dataclasses)
- normalization: Price, budget and legacy preference parsing
- db: Supabase integration (jobs, listings, buyers, audit)
- entitlements: Subscription-tier access gate
- matching: Score listings against buyer preferences
- alerts: Format and send alert emails
- outcomes: Alert records and audit trail
- pipeline: Main orchestration
- server: HTTP trigger
- scheduler: APScheduler setup for periodic runs
"""

__version__ = "0.1.0"

# Convenient imports
from .models import (
    AlertCandidate,
    AlertJob,
    AlertRecord,
    AlertStatus,
    AlertType,
    BuyerPreferences,
    BuyerProfile,
    JobOutcome,
    ProcessingSummary,
    PropertyListing,
    SubscriptionTier,
)
from .errors import DispatchError, JobStoreError, MalformedRecordError, PropertyAlertsError
from .matching import AlertMatch, MatchEngine, MatchResult, evaluate_match
from .entitlements import EntitlementGate, AccessDecision
from .alerts import NotificationDispatcher, EmailMessage
from .outcomes import OutcomeRecorder
from .pipeline import AlertPipeline, process_pending_alerts

__all__ = [
    # Models
    "AlertCandidate",
    "AlertJob",
    "AlertRecord",
    "AlertStatus",
    "AlertType",
    "BuyerPreferences",
    "BuyerProfile",
    "JobOutcome",
    "ProcessingSummary",
    "PropertyListing",
    "SubscriptionTier",
    # Errors
    "DispatchError",
    "JobStoreError",
    "MalformedRecordError",
    "PropertyAlertsError",
    # Matching
    "AlertMatch",
    "MatchEngine",
    "MatchResult",
    "evaluate_match",
    # Entitlements
    "EntitlementGate",
    "AccessDecision",
    # Alerts
    "NotificationDispatcher",
    "EmailMessage",
    # Outcomes
    "OutcomeRecorder",
    # Pipeline
    "AlertPipeline",
    "process_pending_alerts",
]
