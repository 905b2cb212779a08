"""
Tests for persist-then-push notification helpers.
"""
import pytest

from taskhub.db.enums import NotificationType, RelatedType
from taskhub.services.notification_emitter import (
    create_and_emit_to_multiple,
    notification_payload,
    notify_extension_requested,
    notify_leader_invitation,
    notify_task_assigned,
)
from taskhub.services.notifications import NotificationService


pytestmark = pytest.mark.anyio


async def test_task_assigned(test_session, sio_emit):
    notification = await notify_task_assigned(test_session, task_id=4, assignee_id=2, task_title="Ship it")

    assert notification.id is not None
    assert notification.type == NotificationType.task_assigned
    assert notification.related_type == RelatedType.professional_task
    assert "Ship it" in notification.message

    event, payload = sio_emit.call_args.args
    assert event == "notification"
    assert sio_emit.call_args.kwargs["room"] == "user_2"
    assert payload["id"] == notification.id
    assert payload["relatedId"] == 4
    assert payload["isRead"] is False


async def test_extension_request_carries_data(test_session, sio_emit):
    notification = await notify_extension_requested(
        test_session, task_id=4, notify_user_id=1, task_title="Ship it", days=3, reason="blocked",
    )

    assert notification.data == {"extensionDays": 3, "reason": "blocked"}
    assert sio_emit.call_args.args[1]["data"] == {"extensionDays": 3, "reason": "blocked"}


async def test_leader_invitation_mentions_department(test_session, sio_emit):
    notification = await notify_leader_invitation(
        test_session, project_id=8, invitee_id=3, project_name="Apollo", department_name="R&D",
    )

    assert notification.message.endswith("(R&D)")
    assert notification.related_type == RelatedType.professional_project


async def test_multiple_recipients_are_deduplicated(test_session, sio_emit):
    notifications = await create_and_emit_to_multiple(
        test_session,
        [1, 2, 1, None, 3],
        NotificationType.generic,
        "Heads up",
        "Maintenance tonight",
    )

    assert [n.user_id for n in notifications] == [1, 2, 3]
    rooms = [call.kwargs["room"] for call in sio_emit.call_args_list]
    assert rooms == ["user_1", "user_2", "user_3"]


async def test_payload_matches_list_shape(test_session):
    notification = await NotificationService(test_session).create_notification(
        user_id=1,
        notification_type=NotificationType.generic,
        title="Hello",
        message="World",
    )

    payload = notification_payload(notification)

    assert payload["id"] == notification.id
    assert payload["type"] == "generic"
    assert payload["isRead"] is False
    assert "createdAt" in payload
    # Absent optional fields are left out rather than sent as null
    assert "relatedId" not in payload
