"""
Entitlement gate for Property Alerts.

Decides whether a buyer may receive an alert of a given type:
- on_market alerts go to every buyer with alerts enabled
- off_market alerts require the premium tier

Every decision is written to the audit log so entitlement disputes can be
traced, including decisions that never lead to an email.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import AppConfig, get_app_config
from .db import Database, get_db
from .models import AlertType, SubscriptionTier
from .outcomes import OutcomeRecorder

logger = logging.getLogger(__name__)

ACCESS_ACTION = "edge_function_processing"

REASON_OFF_MARKET_REQUIRES_PREMIUM = "off_market_requires_premium"
REASON_INSUFFICIENT_TIER = "insufficient_subscription_tier"
REASON_FEATURE_DISABLED = "feature_disabled"


@dataclass
class AccessDecision:
    """Result of an entitlement check."""
    allowed: bool
    tier: SubscriptionTier
    reason: Optional[str] = None


class EntitlementGate:
    """
    Subscription-tier access check run before matching.

    Never raises: lookup failures deny off-market access.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        recorder: Optional[OutcomeRecorder] = None,
        config: Optional[AppConfig] = None,
    ):
        self.db = db or get_db()
        self.recorder = recorder or OutcomeRecorder(self.db)
        self.config = config or get_app_config()

    def has_access(
        self,
        buyer_id: str,
        alert_type: AlertType,
        property_id: Optional[str] = None,
    ) -> bool:
        """Check and audit access for one buyer and alert type."""
        decision = self.check(buyer_id, alert_type)

        details = {
            "property_id": property_id,
            "alert_type": alert_type.value,
            "tier": decision.tier.value,
        }
        if decision.reason:
            details["reason"] = decision.reason

        self.recorder.log_feature_access(buyer_id, ACCESS_ACTION, decision.allowed, details)
        return decision.allowed

    def check(self, buyer_id: str, alert_type: AlertType) -> AccessDecision:
        """Evaluate the tier policy without writing an audit entry."""
        if alert_type == AlertType.ON_MARKET:
            return AccessDecision(allowed=True, tier=self._lookup_tier(buyer_id) or SubscriptionTier.FREE)

        tier = self._lookup_tier(buyer_id)
        if tier is None:
            return AccessDecision(
                allowed=False,
                tier=SubscriptionTier.FREE,
                reason=REASON_INSUFFICIENT_TIER,
            )

        if tier != SubscriptionTier.PREMIUM:
            return AccessDecision(allowed=False, tier=tier, reason=REASON_OFF_MARKET_REQUIRES_PREMIUM)

        if not self._premium_feature_enabled():
            return AccessDecision(allowed=False, tier=tier, reason=REASON_FEATURE_DISABLED)

        return AccessDecision(allowed=True, tier=tier)

    def _lookup_tier(self, buyer_id: str) -> Optional[SubscriptionTier]:
        try:
            raw_tier = self.db.get_subscription_tier(buyer_id)
        except Exception as e:
            logger.error(f"Error fetching subscription tier for {buyer_id}: {e}")
            return None

        if raw_tier is None:
            logger.warning(f"No profile found for buyer {buyer_id}")
            return None
        return SubscriptionTier.parse(raw_tier)

    def _premium_feature_enabled(self) -> bool:
        # An unconfigured feature row leaves premium access on
        try:
            enabled = self.db.get_feature_flag(self.config.premium_feature_key)
        except Exception as e:
            logger.error(f"Error fetching feature {self.config.premium_feature_key}: {e}")
            return False
        return enabled is not False
