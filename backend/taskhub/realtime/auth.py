"""
Socket.IO authentication module.
Validates JWT tokens for socket connections.
"""
from typing import Optional, Tuple
from jose import JWTError, jwt

from taskhub.core.config import settings
import logging

logger = logging.getLogger(__name__)


def authenticate_socket(auth: dict = None, environ: dict = None) -> Tuple[bool, Optional[dict]]:
    """
    Authenticate a Socket.IO connection using JWT.

    Extracts token from:
    1. auth.token (preferred - sent in Socket.IO auth object)
    2. Authorization header (fallback)

    Returns:
        Tuple of (is_authenticated, user_data)
        user_data contains: user_id, role if authenticated
    """
    token = None

    if auth and isinstance(auth, dict):
        token = auth.get("token")

    if not token and environ:
        header = environ.get("HTTP_AUTHORIZATION", "")
        if header.startswith("Bearer "):
            token = header[7:]

    if not token:
        logger.warning("Socket connection rejected: No token provided")
        return False, None

    payload = decode_token_sync(token)
    if payload is None:
        logger.warning("Socket connection rejected: Invalid JWT")
        return False, None

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("Socket connection rejected: No user_id in token")
        return False, None

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        logger.warning(f"Socket connection rejected: Malformed user_id {user_id!r}")
        return False, None

    logger.info(f"Socket authenticated for user {user_id}")
    return True, {"user_id": user_id, "role": payload.get("role", "user")}


def decode_token_sync(token: str) -> Optional[dict]:
    """
    Token decode for simple validation.
    Does not verify the user still exists in the auth service.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None
