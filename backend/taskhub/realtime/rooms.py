"""
Per-user notification rooms.

Tracks which sockets have joined which user's room, supporting multiple
browser tabs/devices per user (multiple socket IDs).
"""
import logging
from typing import Dict, Set, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


@dataclass
class RoomRegistry:
    """
    In-memory room membership.

    Structure:
    - user_sockets[user_id] = set(socket_ids) that joined the user's room
    - socket_user_map[socket_id] = user_id (for cleanup on disconnect)
    """
    user_sockets: Dict[int, Set[str]] = field(default_factory=dict)
    socket_user_map: Dict[str, int] = field(default_factory=dict)

    def joined(self, user_id: int, socket_id: str) -> bool:
        """
        Register a socket in the user's room.

        Returns True if this is the user's first socket, False for an
        additional tab or a repeated join from the same socket.
        """
        previous = self.socket_user_map.get(socket_id)
        if previous is not None and previous != user_id:
            self.left(socket_id)

        sockets = self.user_sockets.setdefault(user_id, set())
        first = len(sockets) == 0
        sockets.add(socket_id)
        self.socket_user_map[socket_id] = user_id

        if first:
            logger.info(f"User {user_id} room opened (socket: {socket_id})")
        else:
            logger.debug(f"User {user_id} added socket {socket_id} (now {len(sockets)} connections)")
        return first

    def left(self, socket_id: str) -> Optional[Dict]:
        """
        Handle socket disconnect.

        Returns {user_id, room_empty: bool} if the socket was tracked, else None.
        """
        user_id = self.socket_user_map.pop(socket_id, None)
        if user_id is None:
            return None

        sockets = self.user_sockets.get(user_id, set())
        sockets.discard(socket_id)
        room_empty = len(sockets) == 0
        if room_empty:
            self.user_sockets.pop(user_id, None)
            logger.info(f"User {user_id} room closed")

        return {"user_id": user_id, "room_empty": room_empty}

    def is_listening(self, user_id: int) -> bool:
        return bool(self.user_sockets.get(user_id))

    def clear(self):
        """Clear all room data (for testing)."""
        self.user_sockets.clear()
        self.socket_user_map.clear()


# Singleton instance
room_registry = RoomRegistry()
