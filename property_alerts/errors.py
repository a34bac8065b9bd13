"""
Exception types for Property Alerts.

The pipeline distinguishes where a failure is recovered:
- JobStoreError: the pending-jobs batch could not be fetched (surfaced to the caller)
- MalformedRecordError: a repository row could not be decoded (row is skipped)
- DispatchError: one buyer's alert could not be sent (recorded as failed)
"""


class PropertyAlertsError(Exception):
    """Base class for all property alert errors."""


class JobStoreError(PropertyAlertsError):
    """Raised when the alert job store cannot be read or updated."""


class MalformedRecordError(PropertyAlertsError, ValueError):
    """Raised when a database row is missing required fields."""


class DispatchError(PropertyAlertsError):
    """Raised when an alert email could not be handed to the transport."""

    def __init__(self, message: str, recipient: str = ""):
        super().__init__(message)
        self.recipient = recipient
