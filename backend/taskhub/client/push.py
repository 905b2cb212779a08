"""
Real-time notification channel over Socket.IO.

State machine:
    disconnected -> connecting -> connected -> disconnected
                        ^                          |
                        +---- reconnect policy ----+

Published events (``PushChannel.events``):
- connected() - handshake done and ``join`` sent
- disconnected(reason) - initial failure, drop, or close
- notification(Notification) - server pushed a notification
- error(NotificationSyncError) - connect error or server-side ``error`` event
"""
import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import socketio

from taskhub.core.logging import push_logger
from taskhub.client.errors import (
    AuthenticationError,
    ChannelUnavailableError,
    MalformedPayloadError,
    NotificationSyncError,
)
from taskhub.client.events import EventBus
from taskhub.client.models import ConnectionStatus, Notification

# Message the server sends with a refused connection when the token is bad
UNAUTHORIZED = "unauthorized"


@dataclass
class PushConfig:
    auto_reconnect: bool = True
    max_reconnect_attempts: int = 5
    base_reconnect_delay: float = 1.0
    max_reconnect_delay: float = 5.0
    connect_timeout: float = 20.0

    def reconnect_delay(self, attempt: int) -> float:
        """Exponential backoff for the n-th reconnect attempt (1-based), capped."""
        return min(self.base_reconnect_delay * (2 ** max(attempt - 1, 0)), self.max_reconnect_delay)

    @classmethod
    def from_settings(cls, settings) -> "PushConfig":
        return cls(
            auto_reconnect=settings.SOCKET_AUTO_RECONNECT,
            max_reconnect_attempts=settings.SOCKET_RECONNECT_ATTEMPTS,
            base_reconnect_delay=settings.SOCKET_RECONNECT_DELAY,
            max_reconnect_delay=settings.SOCKET_RECONNECT_DELAY_MAX,
            connect_timeout=settings.SOCKET_CONNECT_TIMEOUT,
        )


def default_client_factory() -> socketio.AsyncClient:
    # Reconnection is driven by PushChannel so every attempt is observable
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


class PushChannel:

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        config: Optional[PushConfig] = None,
        *,
        socketio_path: str = "socket.io",
        client_factory: Callable[[], socketio.AsyncClient] = default_client_factory,
    ):
        self.url = url
        self.config = config or PushConfig()
        self.socketio_path = socketio_path
        self.events = EventBus("connected", "disconnected", "notification", "error")
        self._token = token
        self._client_factory = client_factory
        self._client: Optional[socketio.AsyncClient] = None
        self._status = ConnectionStatus.disconnected
        self._user_id = None
        self._supervisor: Optional[asyncio.Task] = None
        self._closing = False
        self._attempts = 0
        self._auth_rejected = False
        self._connect_error: Optional[str] = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status == ConnectionStatus.connected

    @property
    def user_id(self):
        return self._user_id

    @property
    def attempts(self) -> int:
        """Reconnect attempts since the last successful connection."""
        return self._attempts

    @property
    def running(self) -> bool:
        return self._supervisor is not None and not self._supervisor.done()

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, user_id) -> None:
        """
        Start connecting for ``user_id`` in the background and return at once.
        """
        if self.running:
            if user_id == self._user_id:
                return
            raise RuntimeError(f"Push channel already running for user {self._user_id}")

        self._user_id = user_id
        self._closing = False
        self._attempts = 0
        self._auth_rejected = False
        self._supervisor = asyncio.get_running_loop().create_task(
            self._run(), name=f"push-channel-{user_id}"
        )

    async def close(self) -> None:
        """Stop reconnecting and tear the socket down. Idempotent."""
        self._closing = True

        supervisor, self._supervisor = self._supervisor, None
        if supervisor is not None and not supervisor.done():
            supervisor.cancel()
            try:
                await supervisor
            except asyncio.CancelledError:
                pass

        client, self._client = self._client, None
        if client is not None:
            try:
                await client.disconnect()
            except Exception as exc:
                push_logger.warning("Socket disconnect failed during close", error=exc)

        self._mark_disconnected("client closed")

    # ------------------------------------------------------------------
    # Connection loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while not self._closing:
            self._status = ConnectionStatus.connecting
            client = self._client_factory()
            self._client = client
            self._register(client)

            await self._connect_once(client)

            if self._closing or self._auth_rejected or not self.config.auto_reconnect:
                break

            self._attempts += 1
            if self._attempts > self.config.max_reconnect_attempts:
                push_logger.warning(
                    "Giving up on push connection",
                    attempts=self.config.max_reconnect_attempts,
                )
                break

            delay = self.config.reconnect_delay(self._attempts)
            push_logger.info("Reconnecting push channel", attempt=self._attempts, delay=delay)
            await asyncio.sleep(delay)

    async def _connect_once(self, client) -> None:
        self._connect_error = None
        try:
            await client.connect(
                self.url,
                auth={"token": self._token} if self._token else None,
                socketio_path=self.socketio_path,
                wait_timeout=self.config.connect_timeout,
            )
        except (socketio.exceptions.ConnectionError, OSError) as exc:
            if self._connect_error == UNAUTHORIZED:
                self._auth_rejected = True
                error = AuthenticationError("Push connection rejected: unauthorized")
            else:
                error = ChannelUnavailableError(f"Push connection failed: {exc}")
            push_logger.warning("Push connection failed", error=error, url=self.url)
            self._status = ConnectionStatus.disconnected
            self.events.emit("error", error)
            self.events.emit("disconnected", str(error))
            return

        await client.wait()
        # Normally the disconnect handler already ran
        self._mark_disconnected("connection closed")

    def _mark_disconnected(self, reason: str) -> None:
        if self._status == ConnectionStatus.disconnected:
            return
        self._status = ConnectionStatus.disconnected
        push_logger.info("Push channel disconnected", reason=reason)
        self.events.emit("disconnected", reason)

    # ------------------------------------------------------------------
    # Socket.IO handlers
    # ------------------------------------------------------------------

    def _register(self, client) -> None:
        client.on("connect", self._on_connect)
        client.on("connect_error", self._on_connect_error)
        client.on("disconnect", self._on_disconnect)
        client.on("notification", self._on_notification)
        client.on("error", self._on_server_error)

    async def _on_connect(self):
        self._status = ConnectionStatus.connected
        self._attempts = 0
        # Scope server-side delivery to this user
        await self._client.emit("join", self._user_id)
        push_logger.info("Push channel connected", user_id=self._user_id)
        self.events.emit("connected")

    async def _on_connect_error(self, data=None):
        message = data.get("message") if isinstance(data, dict) else data
        self._connect_error = message

    async def _on_disconnect(self, *args):
        reason = str(args[0]) if args else "server disconnected"
        self._mark_disconnected(reason)

    async def _on_notification(self, payload):
        try:
            notification = Notification.from_payload(payload)
        except MalformedPayloadError as exc:
            push_logger.warning("Dropping malformed pushed notification", error=exc)
            return
        self.events.emit("notification", notification)

    async def _on_server_error(self, payload=None):
        message = payload.get("message") if isinstance(payload, dict) else payload
        error: NotificationSyncError = ChannelUnavailableError(f"Push channel error: {message}")
        push_logger.warning("Push channel reported an error", error=error)
        self.events.emit("error", error)
