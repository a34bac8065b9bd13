import pytest

from property_alerts.alerts import EmailTransport
from property_alerts.config import AppConfig, reset_config_cache
from property_alerts.errors import DispatchError, JobStoreError
from property_alerts.models import (
    AlertCandidate,
    AlertJob,
    AlertStatus,
    AlertType,
    BuyerPreferences,
    BuyerProfile,
    PropertyListing,
    SubscriptionTier,
)


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    # Keep tests offline with dummy credentials and default settings
    monkeypatch.setenv("SUPABASE_URL", "http://localhost:54321")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test_service_role_key")
    monkeypatch.setenv("EMAIL_PROVIDER", "supabase")
    monkeypatch.delenv("SKIP_DUPLICATE_ALERTS", raising=False)
    monkeypatch.delenv("MATCH_THRESHOLD", raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


class FakeDatabase:
    """In-memory stand-in for property_alerts.db.Database."""

    def __init__(self):
        self.jobs: list[AlertJob] = []
        self.listings: dict[str, PropertyListing] = {}
        self.media: dict[str, dict] = {}
        self.candidates: list[AlertCandidate] = []
        self.tiers: dict[str, str] = {}
        self.feature_flags: dict[str, bool] = {}

        self.claimed: list[str] = []
        self.locked_elsewhere: set[str] = set()
        self.completed: dict[str, object] = {}
        self.alert_records = []
        self.audit_logs = []

        self.fail_pending = False
        self.fail_candidates = False
        self.fail_alert_records = False
        self.fail_audit = False
        self.fail_tier_lookup_for: set[str] = set()
        self.fail_listing_for: set[str] = set()

    # Job store
    def get_pending_jobs(self, limit):
        if self.fail_pending:
            raise JobStoreError("Failed to fetch pending jobs: connection refused")
        return self.jobs[:limit]

    def mark_job_processing(self, job_id):
        if job_id in self.locked_elsewhere:
            return False
        self.claimed.append(job_id)
        return True

    def mark_job_completed(self, job_id, error_msg=None):
        self.completed[job_id] = error_msg

    # Listings
    def get_approved_listing(self, property_id):
        if property_id in self.fail_listing_for:
            raise RuntimeError(f"listing lookup exploded for {property_id}")
        listing = self.listings.get(property_id)
        if listing is None or not listing.is_approved:
            return None
        return listing

    def get_listing_media(self, property_id):
        return self.media.get(property_id, {"images": [], "features": []})

    # Buyers
    def get_alert_candidates(self):
        if self.fail_candidates:
            raise RuntimeError("user_preferences query failed")
        return list(self.candidates)

    def get_subscription_tier(self, user_id):
        if user_id in self.fail_tier_lookup_for:
            raise RuntimeError("profiles query failed")
        return self.tiers.get(user_id)

    def get_feature_flag(self, feature_key):
        return self.feature_flags.get(feature_key)

    # Outcomes
    def insert_alert_record(self, record):
        if self.fail_alert_records:
            raise RuntimeError("property_alerts insert failed")
        self.alert_records.append(record)

    def has_delivered_alert(self, buyer_id, property_id, alert_type):
        return any(
            r.buyer_id == buyer_id
            and r.property_id == property_id
            and r.alert_type == alert_type
            and r.status in (AlertStatus.SENT, AlertStatus.DELIVERED)
            for r in self.alert_records
        )

    def insert_audit_log(self, entry):
        if self.fail_audit:
            raise RuntimeError("audit_logs insert failed")
        self.audit_logs.append(entry)

    # Helpers
    def add_candidate(self, candidate: AlertCandidate) -> AlertCandidate:
        self.candidates.append(candidate)
        self.tiers[candidate.buyer_id] = candidate.profile.subscription_tier.value
        return candidate

    def audit_actions(self):
        return [e.action for e in self.audit_logs]


class RecordingTransport(EmailTransport):
    """Collects messages instead of sending them."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, message):
        if message.to in self.fail_for:
            raise DispatchError("mailbox unavailable", recipient=message.to)
        self.sent.append(message)


def make_listing(**overrides) -> PropertyListing:
    data = {
        "id": "prop-1",
        "title": "Family Home in Austin",
        "price": "$450k-$500k",
        "city": "Austin",
        "state": "TX",
        "property_type": "House",
        "bedrooms": 3,
        "bathrooms": 2,
        "square_feet": 1800,
        "status": "approved",
        "listing_source": "agent",
    }
    data.update(overrides)
    return PropertyListing.from_dict(data)


def make_candidate(
    user_id: str = "buyer-1",
    tier: str = "free",
    role: str = "buyer",
    email: str = None,
    full_name: str = "Jordan Buyer",
    **preferences,
) -> AlertCandidate:
    row = {
        "user_id": user_id,
        "property_alerts": True,
        "email_notifications": True,
        "budget_range": "400000-550000",
        "preferred_areas": ["Austin"],
        "property_type_preferences": ["House"],
    }
    row.update(preferences)
    row["profiles"] = {
        "id": user_id,
        "email": email or f"{user_id}@example.com",
        "full_name": full_name,
        "role": role,
        "subscription_tier": tier,
    }
    return AlertCandidate.from_row(row)


def make_job(job_id: str = "job-1", property_id: str = "prop-1", alert_type: str = "on_market") -> AlertJob:
    return AlertJob.from_dict({
        "id": job_id,
        "property_id": property_id,
        "alert_type": alert_type,
        "created_at": "2026-10-19T08:00:00Z",
    })


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def app_config():
    return AppConfig()
