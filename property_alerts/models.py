"""
Data models for Property Alerts.

Defines the dataclasses that flow through the alert pipeline: jobs read from
the job store, listing and buyer snapshots used for matching, and the records
written back as outcomes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union
from enum import Enum

from .errors import MalformedRecordError
from .normalization import decode_preferred_areas


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    # Postgres returns "Z" suffixed timestamps
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class AlertType(str, Enum):
    """Listing visibility tier an alert job was raised for."""
    ON_MARKET = "on_market"
    OFF_MARKET = "off_market"


class JobState(str, Enum):
    """Lifecycle of an alert job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class AlertStatus(str, Enum):
    """Outcome of one dispatch attempt."""
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class SubscriptionTier(str, Enum):
    """Buyer subscription tiers."""
    FREE = "free"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionTier":
        """Unknown or missing tiers are treated as free."""
        try:
            return cls((value or "free").strip().lower())
        except ValueError:
            return cls.FREE


LISTING_STATUS_APPROVED = "approved"
BUYER_ROLE = "buyer"


# =============================================================================
# JOB STORE
# =============================================================================

@dataclass
class AlertJob:
    """One unit of work: evaluate a property against all eligible buyers."""
    id: str
    property_id: str
    alert_type: AlertType
    created_at: Optional[datetime] = None
    state: JobState = JobState.PENDING
    error_message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AlertJob":
        try:
            job_id = data["id"]
            property_id = data["property_id"]
            alert_type = AlertType(data.get("alert_type") or AlertType.ON_MARKET.value)
            state = JobState(data.get("status") or data.get("state") or JobState.PENDING.value)
        except (KeyError, ValueError) as e:
            raise MalformedRecordError(f"Invalid alert job row: {e}") from e

        return cls(
            id=str(job_id),
            property_id=str(property_id),
            alert_type=alert_type,
            created_at=_parse_timestamp(data.get("created_at")),
            state=state,
            error_message=data.get("error_message"),
        )


# =============================================================================
# LISTINGS
# =============================================================================

@dataclass
class PropertyListing:
    """
    Read-only snapshot of a listing used for matching.

    `price` is kept as stored: listings imported from agents may carry a
    text price ("$450k-$500k") rather than a number.
    """
    id: str
    title: str
    price: Union[float, str, None] = None
    price_display: Optional[str] = None
    city: str = ""
    state: str = ""
    property_type: str = ""
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_feet: Optional[int] = None
    status: str = LISTING_STATUS_APPROVED
    listing_source: Optional[str] = None

    @property
    def is_approved(self) -> bool:
        return self.status == LISTING_STATUS_APPROVED

    @property
    def location(self) -> str:
        return f"{self.city}, {self.state}"

    @classmethod
    def from_dict(cls, data: dict) -> "PropertyListing":
        if not data.get("id"):
            raise MalformedRecordError("Listing row has no id")
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            price=data.get("price"),
            price_display=data.get("price_display"),
            city=data.get("city") or "",
            state=data.get("state") or "",
            property_type=data.get("property_type") or "",
            bedrooms=data.get("bedrooms"),
            bathrooms=data.get("bathrooms"),
            square_feet=data.get("square_feet"),
            status=data.get("status") or "",
            listing_source=data.get("listing_source"),
        )


# =============================================================================
# BUYERS
# =============================================================================

@dataclass
class BuyerProfile:
    """Profile fields joined onto a buyer's preferences."""
    id: str
    email: str
    full_name: str = ""
    role: str = BUYER_ROLE
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE

    @property
    def display_name(self) -> str:
        return self.full_name or "User"

    @classmethod
    def from_dict(cls, data: Any) -> "BuyerProfile":
        if not isinstance(data, dict):
            raise MalformedRecordError("Profile join is missing")
        if not data.get("id") or not data.get("email"):
            raise MalformedRecordError("Profile join has no id or email")
        return cls(
            id=str(data["id"]),
            email=data["email"],
            full_name=data.get("full_name") or "",
            role=data.get("role") or "",
            subscription_tier=SubscriptionTier.parse(data.get("subscription_tier")),
        )


@dataclass
class BuyerPreferences:
    """
    A buyer's alert preferences with legacy tokens already decoded.

    preferred_areas only holds location strings; room minimums live in
    preferred_bedrooms / preferred_bathrooms.
    """
    user_id: str
    property_alerts: bool = True
    email_notifications: bool = True
    budget_range: Optional[str] = None
    preferred_areas: list[str] = field(default_factory=list)
    preferred_bedrooms: Optional[int] = None
    preferred_bathrooms: Optional[int] = None
    property_type_preferences: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "BuyerPreferences":
        if not data.get("user_id"):
            raise MalformedRecordError("Preference row has no user_id")
        for column in ("preferred_areas", "property_type_preferences"):
            value = data.get(column)
            if value is not None and not isinstance(value, list):
                raise MalformedRecordError(f"Preference column {column} is not a list: {value!r}")

        decoded = decode_preferred_areas(data.get("preferred_areas"))
        return cls(
            user_id=str(data["user_id"]),
            property_alerts=bool(data.get("property_alerts")),
            email_notifications=bool(data.get("email_notifications")),
            budget_range=data.get("budget_range"),
            preferred_areas=decoded.areas,
            preferred_bedrooms=decoded.bedrooms,
            preferred_bathrooms=decoded.bathrooms,
            property_type_preferences=list(data.get("property_type_preferences") or []),
        )


@dataclass
class AlertCandidate:
    """A buyer who may receive alerts: preferences plus profile."""
    preferences: BuyerPreferences
    profile: BuyerProfile

    @property
    def buyer_id(self) -> str:
        return self.preferences.user_id

    @property
    def is_eligible(self) -> bool:
        """True when a buyer account has opted into emailed alerts."""
        return (
            self.preferences.property_alerts
            and self.preferences.email_notifications
            and self.profile.role == BUYER_ROLE
        )

    @classmethod
    def from_row(cls, row: dict) -> "AlertCandidate":
        """Build from a user_preferences row with its nested `profiles` join."""
        preferences = BuyerPreferences.from_dict(row)
        profile = BuyerProfile.from_dict(row.get("profiles"))
        if profile.id != preferences.user_id:
            raise MalformedRecordError(
                f"Profile {profile.id} joined onto preferences of {preferences.user_id}"
            )
        return cls(preferences=preferences, profile=profile)


# =============================================================================
# OUTCOMES
# =============================================================================

EMAIL_TEMPLATES = {
    AlertType.ON_MARKET: "propertyAlert",
    AlertType.OFF_MARKET: "offMarketPropertyAlert",
}


@dataclass
class AlertRecord:
    """Append-only record of one dispatch attempt."""
    buyer_id: str
    property_id: str
    alert_type: AlertType
    status: AlertStatus
    sent_at: datetime = field(default_factory=utcnow)

    @property
    def email_template(self) -> str:
        return EMAIL_TEMPLATES[self.alert_type]

    def to_dict(self) -> dict:
        return {
            "buyer_id": self.buyer_id,
            "property_id": self.property_id,
            "alert_type": self.alert_type.value,
            "status": self.status.value,
            "email_template": self.email_template,
            "sent_at": self.sent_at.isoformat(),
        }


@dataclass
class AuditEntry:
    """Row for the append-only audit_logs table."""
    user_id: str
    action: str
    new_values: dict
    table_name: str = "property_alerts"
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "table_name": self.table_name,
            "action": self.action,
            "new_values": self.new_values,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class JobOutcome:
    """Counts for a single job, returned by the per-job processing step."""
    job_id: str
    property_id: str
    matches_found: int = 0
    alerts_sent: int = 0
    alerts_failed: int = 0
    access_denied: int = 0
    duplicates_skipped: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class ProcessingSummary:
    """Aggregate counts for one pipeline invocation."""
    processed: int = 0
    matches: int = 0
    alerts_sent: int = 0
    access_denied: int = 0
    failed_jobs: int = 0
    skipped_jobs: int = 0
    jobs: list[JobOutcome] = field(default_factory=list)

    def add(self, outcome: JobOutcome) -> None:
        """Fold one job's counts into the batch totals."""
        self.jobs.append(outcome)
        self.access_denied += outcome.access_denied
        if not outcome.succeeded:
            self.failed_jobs += 1
            return
        self.processed += 1
        self.matches += outcome.matches_found
        self.alerts_sent += outcome.alerts_sent

    def to_response(self) -> dict:
        """Counts in the shape returned by the HTTP endpoint."""
        return {
            "processed": self.processed,
            "matches": self.matches,
            "alertsSent": self.alerts_sent,
            "accessDenied": self.access_denied,
        }
