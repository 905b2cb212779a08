"""
In-memory notification store for one user session.

Holds the ordered list (newest first) and the unread count derived from it.
List-level mutations recompute the count; single-item mutations adjust it in
place. Either way ``unread_count`` equals the number of unread entries after
every call.

Events:
- new_notification(notification) - a genuinely new item arrived (toast)
- changed() - list contents or read state changed
"""
from typing import Dict, Iterable, List, Optional, Tuple

from taskhub.client.events import EventBus
from taskhub.client.models import Notification, NotificationId


class NotificationStore:

    def __init__(self):
        self.events = EventBus("new_notification", "changed")
        self._items: List[Notification] = []
        self._by_id: Dict[NotificationId, Notification] = {}
        self._unread_count = 0
        self._initialized = False
        self._last_notification_id: Optional[NotificationId] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def notifications(self) -> Tuple[Notification, ...]:
        return tuple(self._items)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def initialized(self) -> bool:
        """True once the first full list has been loaded."""
        return self._initialized

    @property
    def last_notification_id(self) -> Optional[NotificationId]:
        return self._last_notification_id

    def get(self, notification_id: NotificationId) -> Optional[Notification]:
        return self._by_id.get(notification_id)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, notification_id) -> bool:
        return notification_id in self._by_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def replace_all(self, notifications: Iterable[Notification]) -> bool:
        """
        Replace the whole list with a fresh server view.

        Returns True when a new-notification signal was emitted. The first
        load never signals, whatever it contains.
        """
        items = []
        by_id = {}
        for notification in notifications:
            # Keep the first (newest) copy if the server repeats an id
            if notification.id in by_id:
                continue
            by_id[notification.id] = notification
            items.append(notification)

        newest = items[0] if items else None
        signal = (
            self._initialized
            and newest is not None
            and newest.id != self._last_notification_id
        )

        self._items = items
        self._by_id = by_id
        self._unread_count = sum(1 for n in items if not n.is_read)

        if signal:
            self.events.emit("new_notification", newest)
        if newest is not None:
            self._last_notification_id = newest.id
        self._initialized = True
        self.events.emit("changed")
        return signal

    def upsert(self, notification: Notification) -> bool:
        """
        Insert a push-delivered notification at the top.

        Delivery is at-least-once, so a known id is ignored. Returns True when
        the notification was inserted.
        """
        if notification.id in self._by_id:
            return False

        self._items.insert(0, notification)
        self._by_id[notification.id] = notification
        if not notification.is_read:
            self._unread_count += 1
        self._last_notification_id = notification.id

        self.events.emit("new_notification", notification)
        self.events.emit("changed")
        return True

    def mark_read(self, notification_id: NotificationId) -> bool:
        """Mark one notification read. Returns False when absent or already read."""
        current = self._by_id.get(notification_id)
        if current is None or current.is_read:
            return False

        updated = current.model_copy(update={"is_read": True})
        self._by_id[notification_id] = updated
        self._items = [updated if n.id == notification_id else n for n in self._items]
        self._unread_count = max(0, self._unread_count - 1)

        self.events.emit("changed")
        return True

    def mark_all_read(self) -> int:
        """Mark every notification read. Returns how many changed."""
        changed = sum(1 for n in self._items if not n.is_read)
        self._items = [
            n if n.is_read else n.model_copy(update={"is_read": True})
            for n in self._items
        ]
        self._by_id = {n.id: n for n in self._items}
        self._unread_count = 0

        if changed:
            self.events.emit("changed")
        return changed

    def reset(self) -> None:
        """Forget everything, including the first-load marker."""
        had_items = bool(self._items)
        self._items = []
        self._by_id = {}
        self._unread_count = 0
        self._initialized = False
        self._last_notification_id = None
        if had_items:
            self.events.emit("changed")
