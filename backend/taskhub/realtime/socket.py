"""
Socket.IO server implementation.

Rooms:
- user_{user_id} - Notifications for a single user (joined via the `join` event)

Events (server -> client):
- notification - New notification for the user
- joined - Acknowledges a `join`
- error - Request could not be served

Events (client -> server):
- join - Subscribe this socket to the authenticated user's room
"""
import socketio
from typing import Dict
import logging

from taskhub.realtime.auth import authenticate_socket
from taskhub.realtime.rooms import room_registry, user_room

logger = logging.getLogger(__name__)

# cors_allowed_origins=[] - Let FastAPI's CORS middleware handle CORS to avoid duplicate headers
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=[],
    logger=False,
    engineio_logger=False,
)

# Track authenticated users: sid -> user_data
authenticated_users: Dict[str, dict] = {}


@sio.event
async def connect(sid: str, environ: dict, auth: dict = None):
    """
    Handle new socket connection.
    Rejects unauthenticated sockets with an `unauthorized` connect error.
    """
    logger.info(f"Socket connect attempt: {sid}")

    is_authenticated, user_data = authenticate_socket(auth, environ)
    if not is_authenticated:
        logger.warning(f"Socket connection rejected: {sid}")
        raise socketio.exceptions.ConnectionRefusedError("unauthorized")

    authenticated_users[sid] = user_data
    logger.info(f"Socket connected: {sid} (user: {user_data['user_id']})")


@sio.event
async def disconnect(sid: str, *args):
    """
    Handle socket disconnection.
    Socket.IO leaves rooms automatically; only local bookkeeping is cleared.
    """
    user_data = authenticated_users.pop(sid, None)
    room_registry.left(sid)

    if user_data:
        logger.info(f"Socket disconnected: {sid} (user: {user_data['user_id']})")
    else:
        logger.info(f"Socket disconnected: {sid} (unauthenticated)")


@sio.event
async def join(sid: str, data):
    """
    Join the notification room of the authenticated user.

    Expected data: the user id (int or numeric string), or { "user_id": int }
    """
    user_data = authenticated_users.get(sid)
    if not user_data:
        await sio.emit("error", {"message": "Not authenticated"}, room=sid)
        return

    if isinstance(data, dict):
        data = data.get("user_id", data.get("userId"))

    try:
        requested = int(data)
    except (TypeError, ValueError):
        await sio.emit("error", {"message": "user_id is required"}, room=sid)
        return

    if requested != user_data["user_id"]:
        logger.warning(f"Socket {sid} tried to join room of user {requested}")
        await sio.emit("error", {"message": "Cannot join another user's room"}, room=sid)
        return

    room_name = user_room(requested)
    await sio.enter_room(sid, room_name)
    room_registry.joined(requested, sid)

    await sio.emit("joined", {"room": room_name}, room=sid)
    logger.info(f"User {requested} joined room: {room_name}")


# ============================================================
# Emit helpers (called from other parts of the application)
# ============================================================

async def emit_notification(user_id: int, notification_data: dict) -> bool:
    """
    Emit a notification to every socket in the user's room.

    Returns False when no socket has joined the room; the notification is
    already stored, so the client picks it up on its next fetch.
    """
    room_name = user_room(user_id)
    await sio.emit("notification", notification_data, room=room_name)
    if not room_registry.is_listening(user_id):
        logger.debug(f"No socket in {room_name}; notification waits for the next fetch")
        return False
    logger.debug(f"Emitted notification to {room_name}")
    return True
