"""
Reconciliation engine: owns the push/poll failover decision and is the only
writer of the notification store.

Delivery rules:
- session start: connect the push channel and fetch once right away
- push connected: stop polling; on a reconnect, fetch once to close the gap
- push disconnected / error: start polling (fetch + replace_all every tick)
- push notification: store.upsert (the only real-time toast path)
- session end: unsubscribe, stop polling, cancel in-flight fetches, close push

Every store write that follows an ``await`` first checks the session
generation, so a request that resolves after ``on_session_end`` is dropped.
"""
import asyncio
from typing import Optional, Set

from taskhub.core.logging import sync_logger, generate_session_id, set_session_id
from taskhub.client.errors import AuthenticationError, NotificationSyncError
from taskhub.client.events import EventBus, SubscriptionGroup
from taskhub.client.fetch import FetchChannel
from taskhub.client.models import DeliveryMode, Notification, NotificationId
from taskhub.client.push import PushChannel
from taskhub.client.store import NotificationStore

DEFAULT_POLL_INTERVAL = 30.0


class ReconciliationEngine:
    """
    Events (``engine.events``):
    - delivery_mode_changed(DeliveryMode)
    - auth_error(AuthenticationError) - for the auth layer (e.g. redirect to login)
    """

    def __init__(
        self,
        store: NotificationStore,
        fetch_channel: FetchChannel,
        push_channel: PushChannel,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.store = store
        self.fetch_channel = fetch_channel
        self.push_channel = push_channel
        self.poll_interval = poll_interval
        self.events = EventBus("delivery_mode_changed", "auth_error")

        self._subscriptions = SubscriptionGroup()
        self._poll_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._user_id = None
        self._session_id: Optional[str] = None
        self._generation = 0
        self._active = False
        self._halted = False
        self._push_seen = False
        self._mode = DeliveryMode.poll

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._active

    @property
    def user_id(self):
        return self._user_id

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def delivery_mode(self) -> DeliveryMode:
        """Push while the socket is up and no poll timer runs, poll otherwise."""
        if self.push_channel.connected and not self.polling:
            return DeliveryMode.push
        return DeliveryMode.poll

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def on_session_start(self, user_id) -> None:
        if self._active:
            if user_id == self._user_id:
                return
            await self.on_session_end()

        if user_id != self._user_id:
            self.store.reset()

        self._generation += 1
        self._user_id = user_id
        self._active = True
        self._halted = False
        self._push_seen = False
        self._session_id = generate_session_id()
        set_session_id(self._session_id)
        sync_logger.info("Notification session started", user_id=user_id)

        push = self.push_channel.events
        self._subscriptions.add(push.subscribe("connected", self._on_push_connected))
        self._subscriptions.add(push.subscribe("disconnected", self._on_push_disconnected))
        self._subscriptions.add(push.subscribe("error", self._on_push_error))
        self._subscriptions.add(push.subscribe("notification", self._on_push_notification))

        self.push_channel.connect(user_id)
        # Covers the window before the socket is up
        self._spawn(self._refresh_quietly())

    async def on_session_end(self) -> None:
        """Tear everything down. Safe to call repeatedly and on error paths."""
        was_active = self._active
        self._active = False
        self._generation += 1
        self._subscriptions.close()

        try:
            self._stop_polling()
            tasks = list(self._tasks)
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.clear()
        finally:
            await self.push_channel.close()

        if was_active:
            sync_logger.info("Notification session ended", user_id=self._user_id)
        set_session_id(None)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.on_session_end()

    # ------------------------------------------------------------------
    # Commands from the presentation layer
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Fetch the full list and replace the store contents."""
        generation = self._generation
        notifications = await self.fetch_channel.fetch_notifications()
        if not self._active or generation != self._generation:
            sync_logger.debug("Dropping fetch result from an ended session")
            return
        self.store.replace_all(notifications)

    async def mark_read(self, notification_id: NotificationId) -> None:
        """
        Mark one notification read on the server, then locally.
        Raises on failure and leaves the store untouched.
        """
        generation = self._generation
        await self.fetch_channel.mark_read(notification_id)
        if self._active and generation == self._generation:
            self.store.mark_read(notification_id)

    async def mark_all_read(self) -> None:
        """
        Mark everything read on the server, then locally. A re-fetch always
        follows, even when the request fails, since the bulk update may have
        been applied in part. Failures still raise to the caller.
        """
        generation = self._generation
        try:
            await self.fetch_channel.mark_all_read()
            if self._active and generation == self._generation:
                self.store.mark_all_read()
        finally:
            if self._active and generation == self._generation:
                await self._refresh_quietly()

    # ------------------------------------------------------------------
    # Push channel reactions
    # ------------------------------------------------------------------

    def _on_push_connected(self) -> None:
        if not self._active:
            return
        reconnected = self._push_seen or self.polling
        self._push_seen = True
        self._stop_polling()
        if reconnected:
            # Pick up whatever arrived between the last poll tick and now
            self._spawn(self._refresh_quietly())
        self._publish_mode()

    def _on_push_disconnected(self, reason: str) -> None:
        if not self._active:
            return
        sync_logger.info("Push channel down, falling back to polling", reason=reason)
        self._start_polling()
        self._publish_mode()

    def _on_push_error(self, error: NotificationSyncError) -> None:
        if not self._active:
            return
        if isinstance(error, AuthenticationError):
            self._handle_auth_error(error)
            return
        self._start_polling()
        self._publish_mode()

    def _on_push_notification(self, notification: Notification) -> None:
        if not self._active:
            return
        self.store.upsert(notification)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _start_polling(self) -> None:
        if self.polling or self._halted:
            return
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll_loop(self._generation), name="notification-poll"
        )

    def _stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _poll_loop(self, generation: int) -> None:
        while self._active and generation == self._generation:
            await asyncio.sleep(self.poll_interval)
            if not self._active or generation != self._generation:
                return
            try:
                await self.refresh()
            except AuthenticationError as exc:
                self._handle_auth_error(exc)
                return
            except NotificationSyncError as exc:
                sync_logger.warning("Polling fetch failed, retrying next tick", error=exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _refresh_quietly(self) -> None:
        try:
            await self.refresh()
        except AuthenticationError as exc:
            self._handle_auth_error(exc)
        except NotificationSyncError as exc:
            sync_logger.warning("Notification fetch failed", error=exc)

    def _handle_auth_error(self, error: AuthenticationError) -> None:
        if self._halted:
            return
        self._halted = True
        sync_logger.error("Notification credentials rejected", error=error)
        if self._poll_task is not asyncio.current_task():
            self._stop_polling()
        else:
            self._poll_task = None
        self.events.emit("auth_error", error)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _publish_mode(self) -> None:
        mode = self.delivery_mode
        if mode != self._mode:
            self._mode = mode
            self.events.emit("delivery_mode_changed", mode)
