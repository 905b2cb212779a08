"""
End-to-end sync against the real notifications API served in-process.
"""
import pytest
from httpx import ASGITransport

from taskhub.main import app
from taskhub.client.engine import ReconciliationEngine
from taskhub.client.fetch import FetchChannel
from taskhub.client.store import NotificationStore
from taskhub.db.enums import NotificationType
from taskhub.services.notifications import NotificationService
from fakes import FakePushChannel, wait_until


pytestmark = [pytest.mark.anyio, pytest.mark.integration]


@pytest.fixture
async def make_engine(client, make_token):
    """Engines talking to the app; ``client`` keeps the test database wired in."""
    engines = []

    def _make_engine(user_id: int, token: str = None):
        fetch = FetchChannel(
            "http://test/api",
            token or make_token(user_id),
            transport=ASGITransport(app=app),
        )
        engine = ReconciliationEngine(NotificationStore(), fetch, FakePushChannel(), poll_interval=0.02)
        engines.append(engine)
        return engine

    yield _make_engine

    for engine in engines:
        await engine.on_session_end()
        await engine.fetch_channel.aclose()


async def test_sync_round_trip(make_engine, client, test_session, auth_headers):
    service = NotificationService(test_session)
    first = await service.create_notification(1, NotificationType.task_assigned, "One", "First task")
    second = await service.create_notification(1, NotificationType.task_assigned, "Two", "Second task")

    engine = make_engine(1)
    store = engine.store
    toasts = []
    store.events.subscribe("new_notification", toasts.append)

    await engine.on_session_start(1)
    await wait_until(lambda: store.initialized)
    assert [n.id for n in store.notifications] == [second.id, first.id]
    assert store.unread_count == 2
    assert toasts == []

    await engine.mark_read(first.id)
    assert store.unread_count == 1
    listed = await client.get("/api/notifications", headers=auth_headers(1))
    assert listed.json()["unreadCount"] == 1

    # Socket down: the poll picks up what the API created meanwhile
    engine.push_channel.simulate_disconnected()
    created = await client.post(
        "/api/notifications",
        json={"userId": 1, "title": "Three", "message": "Third task"},
        headers=auth_headers(1),
    )
    new_id = created.json()["data"]["id"]
    await wait_until(lambda: new_id in store, timeout=2.0)
    assert [n.id for n in toasts] == [new_id]
    assert store.unread_count == 2

    await engine.mark_all_read()
    assert store.unread_count == 0
    listed = await client.get("/api/notifications", headers=auth_headers(1))
    assert listed.json()["unreadCount"] == 0


async def test_rejected_token_reports_auth_error(make_engine):
    engine = make_engine(1, token="not-a-jwt")
    errors = []
    engine.events.subscribe("auth_error", errors.append)

    await engine.on_session_start(1)
    await wait_until(lambda: errors)

    assert errors[0].status_code == 401
    assert not engine.store.initialized
    assert not engine.polling
