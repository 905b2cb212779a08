"""
Notification sync client: keeps a session's notification list current over
a Socket.IO push channel, falling back to HTTP polling while push is down.
"""
from taskhub.client.engine import ReconciliationEngine
from taskhub.client.errors import (
    AuthenticationError,
    ChannelUnavailableError,
    MalformedPayloadError,
    NotificationSyncError,
)
from taskhub.client.events import EventBus, Subscription, SubscriptionGroup
from taskhub.client.fetch import FetchChannel
from taskhub.client.models import ConnectionStatus, DeliveryMode, Notification
from taskhub.client.push import PushChannel, PushConfig
from taskhub.client.session import NotificationSession
from taskhub.client.store import NotificationStore

__all__ = [
    "AuthenticationError",
    "ChannelUnavailableError",
    "ConnectionStatus",
    "DeliveryMode",
    "EventBus",
    "FetchChannel",
    "MalformedPayloadError",
    "Notification",
    "NotificationSession",
    "NotificationStore",
    "NotificationSyncError",
    "PushChannel",
    "PushConfig",
    "ReconciliationEngine",
    "Subscription",
    "SubscriptionGroup",
]
