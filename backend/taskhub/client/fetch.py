"""
Pull-based notification retrieval over HTTP.

Talks to the notifications API:
- GET  /notifications            -> {"data": [...]} or a bare list, newest first
- PUT  /notifications/{id}/read  -> any 2xx is success
- PUT  /notifications/read-all   -> any 2xx is success
"""
from typing import Any, List, Optional

import httpx

from taskhub.core.logging import sync_logger, log_operation
from taskhub.client.errors import (
    AuthenticationError,
    ChannelUnavailableError,
    MalformedPayloadError,
)
from taskhub.client.models import Notification, NotificationId


class FetchChannel:
    """
    Request/response channel to the notifications API.

    Either pass an ``httpx.AsyncClient`` to share (it is not closed by
    ``aclose``) or let the channel build its own from ``base_url``.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout,
        )

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _url(self, path: str) -> str:
        # Absolute URL so a shared client with another base_url still works
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str) -> httpx.Response:
        try:
            response = await self._client.request(method, self._url(path), headers=self._headers())
        except httpx.TimeoutException as exc:
            raise ChannelUnavailableError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise ChannelUnavailableError(f"{method} {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"{method} {path} rejected with {response.status_code}",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise ChannelUnavailableError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @log_operation("fetch_notifications", sync_logger)
    async def fetch_notifications(self) -> List[Notification]:
        response = await self._request("GET", "/notifications")
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedPayloadError("Notification list is not JSON") from exc
        return parse_notification_list(body)

    @log_operation("mark_notification_read", sync_logger)
    async def mark_read(self, notification_id: NotificationId) -> None:
        await self._request("PUT", f"/notifications/{notification_id}/read")

    @log_operation("mark_all_notifications_read", sync_logger)
    async def mark_all_read(self) -> None:
        await self._request("PUT", "/notifications/read-all")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def parse_notification_list(body: Any) -> List[Notification]:
    """
    Parse a list response, skipping entries that cannot be identified.
    """
    items = body.get("data") if isinstance(body, dict) else body
    if not isinstance(items, list):
        raise MalformedPayloadError("Notification list response has no list of items")

    notifications = []
    for raw in items:
        try:
            notifications.append(Notification.from_payload(raw))
        except MalformedPayloadError as exc:
            sync_logger.warning("Skipping malformed notification", error=exc)
    return notifications
