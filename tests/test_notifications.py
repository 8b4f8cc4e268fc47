"""Tests for the notification channel."""

import asyncio
from uuid import uuid4

import pytest
from conftest import drain
from fastapi import WebSocketDisconnect

from animation_engine.api.routes.ws import animation_updates
from animation_engine.domain.enums import AnimationStatus, TaskStatus, TaskType
from animation_engine.domain.events import AnimationUpdateEvent, TaskUpdateEvent
from animation_engine.services.notifications import NotificationChannel


def _event(status: TaskStatus = TaskStatus.PROCESSING) -> TaskUpdateEvent:
    return TaskUpdateEvent(
        animation_id=uuid4(),
        task_id=uuid4(),
        task_type=TaskType.SCRIPT_GENERATION,
        status=status,
    )


class TestNotificationChannel:
    """Fan-out behaviour."""

    def test_publish_without_subscribers(self) -> None:
        channel = NotificationChannel(queue_size=10)
        assert channel.publish(_event()) == 0

    def test_every_subscriber_receives_every_event(self) -> None:
        channel = NotificationChannel(queue_size=10)
        first = channel.subscribe()
        second = channel.subscribe()

        delivered = channel.publish(_event())

        assert delivered == 2
        assert len(drain(first)) == 1
        assert len(drain(second)) == 1

    def test_messages_arrive_in_publish_order(self) -> None:
        channel = NotificationChannel(queue_size=10)
        subscription = channel.subscribe()
        statuses = [TaskStatus.PROCESSING, TaskStatus.COMPLETED, TaskStatus.FAILED]

        for status in statuses:
            channel.publish(_event(status))

        assert [m["status"] for m in drain(subscription)] == [str(s) for s in statuses]

    def test_unsubscribed_client_receives_nothing(self) -> None:
        channel = NotificationChannel(queue_size=10)
        subscription = channel.subscribe()
        channel.unsubscribe(subscription)

        assert channel.publish(_event()) == 0
        assert subscription.closed is True
        assert drain(subscription) == []
        assert channel.subscriber_count == 0

    def test_closed_subscription_is_skipped(self) -> None:
        channel = NotificationChannel(queue_size=10)
        closed = channel.subscribe()
        open_ = channel.subscribe()
        closed.close()

        assert channel.publish(_event()) == 1
        assert drain(closed) == []
        assert len(drain(open_)) == 1

    def test_full_subscriber_drops_without_blocking_others(self) -> None:
        channel = NotificationChannel(queue_size=1)
        slow = channel.subscribe()
        channel.publish(_event())

        fast = channel.subscribe()
        delivered = channel.publish(_event())

        assert delivered == 1
        assert slow.dropped == 1
        assert len(drain(slow)) == 1
        assert len(drain(fast)) == 1

    def test_unsubscribe_is_idempotent(self) -> None:
        channel = NotificationChannel(queue_size=10)
        subscription = channel.subscribe()
        channel.unsubscribe(subscription)
        channel.unsubscribe(subscription)
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_get_waits_for_next_message(self) -> None:
        channel = NotificationChannel(queue_size=10)
        subscription = channel.subscribe()
        animation_id = uuid4()

        channel.publish(AnimationUpdateEvent(animation_id=animation_id, status=AnimationStatus.COMPLETED))
        message = await subscription.get()

        assert message == {
            "type": "animation_update",
            "animationId": str(animation_id),
            "status": "completed",
        }


class DisconnectingWebSocket:
    """WebSocket double whose client leaves right after connecting."""

    def __init__(self) -> None:
        self.accepted = False

    async def accept(self) -> None:
        self.accepted = True

    async def receive_text(self) -> str:
        raise WebSocketDisconnect(code=1000)

    async def send_json(self, message) -> None:
        pass


class TestWebSocketEndpoint:
    """Subscription lifecycle of the WebSocket endpoint."""

    @pytest.mark.asyncio
    async def test_disconnect_unsubscribes_and_stops_forwarding(self) -> None:
        channel = NotificationChannel(queue_size=10)
        websocket = DisconnectingWebSocket()

        await animation_updates(websocket, channel)

        assert websocket.accepted is True
        assert channel.subscriber_count == 0
        # Helper tasks have finished, not merely been asked to cancel
        assert asyncio.all_tasks() == {asyncio.current_task()}
