"""
Wiring for one signed-in user.

    async with NotificationSession.from_settings(token) as session:
        await session.start(user_id)
        session.store.events.subscribe("new_notification", show_toast)
        ...
"""
from typing import Optional

from taskhub.core.config import settings as default_settings
from taskhub.client.engine import ReconciliationEngine
from taskhub.client.fetch import FetchChannel
from taskhub.client.push import PushChannel, PushConfig
from taskhub.client.store import NotificationStore


class NotificationSession:

    def __init__(self, engine: ReconciliationEngine):
        self.engine = engine

    @classmethod
    def from_settings(cls, token: Optional[str], settings=default_settings, **push_kwargs) -> "NotificationSession":
        fetch_channel = FetchChannel(
            settings.NOTIFICATIONS_API_URL,
            token,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        push_channel = PushChannel(
            settings.SOCKET_URL,
            token,
            PushConfig.from_settings(settings),
            socketio_path=settings.SOCKET_PATH,
            **push_kwargs,
        )
        engine = ReconciliationEngine(
            NotificationStore(),
            fetch_channel,
            push_channel,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
        )
        return cls(engine)

    @property
    def store(self) -> NotificationStore:
        return self.engine.store

    async def start(self, user_id) -> None:
        await self.engine.on_session_start(user_id)

    async def end(self) -> None:
        await self.engine.on_session_end()

    async def close(self) -> None:
        """End the session and release the HTTP client."""
        try:
            await self.engine.on_session_end()
        finally:
            await self.engine.fetch_channel.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
