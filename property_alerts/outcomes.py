"""
Outcome recording module for Property Alerts.

Writes what the pipeline did:
1. One property_alerts row per dispatch attempt (sent or failed)
2. One audit row per processed job
3. One audit row per entitlement decision

Every write is best-effort. A lost audit row is logged and swallowed so it
can never stop the remaining buyers or jobs from being processed.
"""

import logging
from typing import Any, Optional

from .db import Database, get_db
from .models import AlertRecord, AlertStatus, AlertType, AuditEntry, utcnow

logger = logging.getLogger(__name__)

AUDIT_TABLE = "property_alerts"
SYSTEM_USER = "system"
PROCESS_ACTION = "edge_function_process_property"


class OutcomeRecorder:
    """
    Persists alert records and audit entries.

    Usage:
        recorder = OutcomeRecorder()
        recorder.record_alert(buyer_id, property_id, AlertStatus.SENT, AlertType.ON_MARKET)
    """

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()

    def record_alert(
        self,
        buyer_id: str,
        property_id: str,
        status: AlertStatus,
        alert_type: AlertType,
    ) -> None:
        """Append an AlertRecord for one dispatch attempt."""
        record = AlertRecord(
            buyer_id=buyer_id,
            property_id=property_id,
            alert_type=alert_type,
            status=status,
        )
        try:
            self.db.insert_alert_record(record)
        except Exception as e:
            logger.error(
                f"Failed to record {status.value} alert for buyer {buyer_id} "
                f"on property {property_id}: {e}"
            )

    def log_processing(
        self,
        property_id: str,
        matches_found: int,
        alerts_sent: int,
        access_denied_count: int = 0,
    ) -> None:
        """Write the per-job summary audit entry."""
        entry = AuditEntry(
            user_id=SYSTEM_USER,
            table_name=AUDIT_TABLE,
            action=PROCESS_ACTION,
            new_values={
                "property_id": property_id,
                "matches_found": matches_found,
                "alerts_sent": alerts_sent,
                "access_denied_count": access_denied_count,
                "timestamp": utcnow().isoformat(),
            },
        )
        self._write_audit(entry)

    def log_feature_access(
        self,
        buyer_id: str,
        action: str,
        allowed: bool,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Write an audit entry for an entitlement decision, granted or denied."""
        entry = AuditEntry(
            user_id=buyer_id,
            table_name=AUDIT_TABLE,
            action=f"feature_access_{action}",
            new_values={
                "allowed": allowed,
                "feature": "property_alerts",
                "details": details or {},
                "timestamp": utcnow().isoformat(),
            },
        )
        self._write_audit(entry)

    def has_prior_delivery(self, buyer_id: str, property_id: str, alert_type: AlertType) -> bool:
        """
        Check for an earlier sent/delivered alert for the same buyer and property.

        A failed lookup returns False, so the buyer is alerted rather than skipped.
        """
        try:
            return self.db.has_delivered_alert(buyer_id, property_id, alert_type)
        except Exception as e:
            logger.warning(f"Could not check alert history for buyer {buyer_id}: {e}")
            return False

    def _write_audit(self, entry: AuditEntry) -> None:
        try:
            self.db.insert_audit_log(entry)
        except Exception as e:
            logger.error(f"Failed to write audit log {entry.action} for {entry.user_id}: {e}")
