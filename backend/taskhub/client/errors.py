"""
Errors raised by the notification client.

Channel boundaries translate transport failures into these; the
reconciliation engine turns the transient ones into a delivery-mode change
instead of letting them reach the UI.
"""


class NotificationSyncError(Exception):
    """Base class for notification client errors."""


class ChannelUnavailableError(NotificationSyncError):
    """Network failure, timeout or unexpected server status. Retried."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(NotificationSyncError):
    """Credentials were rejected. Never retried; the auth layer must act."""

    def __init__(self, message: str = "Authentication failed", status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedPayloadError(NotificationSyncError):
    """Server payload cannot be used (no id, body is not a list, ...)."""
