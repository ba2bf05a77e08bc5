"""Unit tests for app.services.notifications: join handshake, fan-out, ordering, subscribers."""

import asyncio
import time
import unittest
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from app.services.notifications import (
    CLOSE_CODE_SEND_FAILED,
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    TRANSACTION_UPDATED,
    NotificationHub,
    SessionState,
    actor_identity,
    deletion_payload,
    transaction_payload,
)


class FakeChannel:
    """Records every message sent to it."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None

    async def send_json(self, data: Any) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def events(self) -> list[str]:
        return [m["event"] for m in self.sent]


class BrokenChannel(FakeChannel):
    async def send_json(self, data: Any) -> None:
        raise ConnectionResetError("socket closed")


class StalledChannel(FakeChannel):
    async def send_json(self, data: Any) -> None:
        await asyncio.sleep(5)


def _joined(hub: NotificationHub, channel: Any, admin_id: int = 1):
    session = hub.connect(channel)
    hub.join(session, admin_id)
    return session


def _broadcast(hub: NotificationHub, event: str, payload: dict[str, Any]) -> int:
    """Broadcast, then let every writer finish before the loop shuts down."""

    async def run() -> int:
        queued = await hub.broadcast(event, payload)
        await hub.wait_idle()
        return queued

    return asyncio.run(run())


class TestHandshake(unittest.TestCase):
    def test_connected_but_not_joined_receives_nothing(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        lurker = FakeChannel()
        session = hub.connect(lurker)
        self.assertIs(session.state, SessionState.CONNECTING)
        delivered = _broadcast(hub, TRANSACTION_ADDED, {"transaction": {}})
        self.assertEqual(delivered, 0)
        self.assertEqual(lurker.sent, [])

    def test_join_moves_session_into_group(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        channel = FakeChannel()
        session = _joined(hub, channel, admin_id=7)
        self.assertIs(session.state, SessionState.JOINED)
        self.assertEqual(session.admin_id, 7)
        self.assertEqual(hub.joined_count, 1)

    def test_cannot_join_after_disconnect(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        session = hub.connect(FakeChannel())
        hub.disconnect(session)
        self.assertIs(session.state, SessionState.DISCONNECTED)
        with self.assertRaises(ValueError):
            hub.join(session, 1)


class TestBroadcast(unittest.TestCase):
    def test_delivered_to_every_joined_session(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        a, b = FakeChannel(), FakeChannel()
        _joined(hub, a)
        _joined(hub, b, admin_id=2)
        payload = {"transaction": {"id": 1, "amount": 10.0}}
        queued = _broadcast(hub, TRANSACTION_ADDED, payload)
        self.assertEqual(queued, 2)
        for channel in (a, b):
            self.assertEqual(channel.sent, [{"event": TRANSACTION_ADDED, "data": payload}])

    def test_session_disconnected_before_broadcast_misses_event(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        stays, leaves = FakeChannel(), FakeChannel()
        _joined(hub, stays)
        gone = _joined(hub, leaves, admin_id=2)
        hub.disconnect(gone)
        queued = _broadcast(hub, TRANSACTION_DELETED, {"transactionId": 3})
        self.assertEqual(queued, 1)
        self.assertEqual(len(stays.sent), 1)
        self.assertEqual(leaves.sent, [])

    def test_failing_session_dropped_and_closed(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        healthy = FakeChannel()
        _joined(hub, healthy)
        broken_channel = BrokenChannel()
        broken = _joined(hub, broken_channel, admin_id=2)
        _broadcast(hub, TRANSACTION_ADDED, {"transaction": {}})
        self.assertEqual(len(healthy.sent), 1)
        self.assertIs(broken.state, SessionState.DISCONNECTED)
        self.assertEqual(broken_channel.closed_with, CLOSE_CODE_SEND_FAILED)
        self.assertIsNone(healthy.closed_with)
        self.assertEqual(hub.joined_count, 1)

    def test_dropped_session_cannot_rejoin(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        broken = _joined(hub, BrokenChannel())
        _broadcast(hub, TRANSACTION_ADDED, {"transaction": {}})
        self.assertIs(broken.state, SessionState.DISCONNECTED)
        with self.assertRaises(ValueError):
            hub.join(broken, 1)

    def test_stalled_session_times_out_and_is_closed(self) -> None:
        hub = NotificationHub(send_timeout=0.05)
        healthy = FakeChannel()
        _joined(hub, healthy)
        stalled_channel = StalledChannel()
        stalled = _joined(hub, stalled_channel, admin_id=2)
        _broadcast(hub, TRANSACTION_UPDATED, {"transaction": {}})
        self.assertEqual(len(healthy.sent), 1)
        self.assertIs(stalled.state, SessionState.DISCONNECTED)
        self.assertEqual(stalled_channel.closed_with, CLOSE_CODE_SEND_FAILED)

    def test_broadcast_does_not_wait_for_stalled_session(self) -> None:
        hub = NotificationHub(send_timeout=30.0)
        healthy = FakeChannel()
        _joined(hub, healthy)
        stalled = _joined(hub, StalledChannel(), admin_id=2)

        async def run() -> float:
            started = time.monotonic()
            await hub.broadcast(TRANSACTION_ADDED, {"transaction": {}})
            elapsed = time.monotonic() - started
            hub.disconnect(stalled)
            await hub.wait_idle()
            return elapsed

        self.assertLess(asyncio.run(run()), 1.0)
        self.assertEqual(len(healthy.sent), 1)

    def test_full_outbox_drops_session(self) -> None:
        hub = NotificationHub(send_timeout=30.0, outbox_limit=2)
        stalled_channel = StalledChannel()
        stalled = _joined(hub, stalled_channel)

        async def run() -> list[int]:
            counts = [await hub.broadcast(TRANSACTION_ADDED, {"transaction": {"id": i}}) for i in range(4)]
            await hub.wait_idle()
            return counts

        counts = asyncio.run(run())
        self.assertEqual(counts[:2], [1, 1])
        self.assertIn(0, counts[2:])
        self.assertIs(stalled.state, SessionState.DISCONNECTED)
        self.assertEqual(stalled_channel.closed_with, CLOSE_CODE_SEND_FAILED)

    def test_events_arrive_in_issue_order(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        a, b = FakeChannel(), FakeChannel()
        _joined(hub, a)
        _joined(hub, b, admin_id=2)

        async def burst() -> None:
            for i in range(20):
                await hub.broadcast(TRANSACTION_ADDED, {"transaction": {"id": i}})
            await hub.wait_idle()

        asyncio.run(burst())
        expected = list(range(20))
        for channel in (a, b):
            self.assertEqual([m["data"]["transaction"]["id"] for m in channel.sent], expected)

    def test_no_sessions_is_fine(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        self.assertEqual(_broadcast(hub, TRANSACTION_ADDED, {}), 0)


class TestSubscribers(unittest.TestCase):
    def test_multiple_subscribers_on_same_event(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        first, second = MagicMock(), AsyncMock()
        hub.subscribe(TRANSACTION_ADDED, first)
        hub.subscribe(TRANSACTION_ADDED, second)
        _broadcast(hub, TRANSACTION_ADDED, {"transaction": {"id": 1}})
        first.assert_called_once_with(TRANSACTION_ADDED, {"transaction": {"id": 1}})
        second.assert_awaited_once_with(TRANSACTION_ADDED, {"transaction": {"id": 1}})

    def test_unsubscribe_removes_only_that_callback(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        keep, drop = MagicMock(), MagicMock()
        hub.subscribe(TRANSACTION_DELETED, keep)
        unsubscribe = hub.subscribe(TRANSACTION_DELETED, drop)
        unsubscribe()
        _broadcast(hub, TRANSACTION_DELETED, {"transactionId": 5})
        keep.assert_called_once()
        drop.assert_not_called()

    def test_failing_subscriber_does_not_block_others(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        bad = MagicMock(side_effect=RuntimeError("boom"))
        good = MagicMock()
        hub.subscribe(TRANSACTION_UPDATED, bad)
        hub.subscribe(TRANSACTION_UPDATED, good)
        _broadcast(hub, TRANSACTION_UPDATED, {})
        good.assert_called_once()

    def test_subscribers_only_see_their_event(self) -> None:
        hub = NotificationHub(send_timeout=1.0)
        listener = MagicMock()
        hub.subscribe(TRANSACTION_ADDED, listener)
        _broadcast(hub, TRANSACTION_DELETED, {})
        listener.assert_not_called()


class TestPayloads(unittest.TestCase):
    def test_transaction_payload_attaches_actor(self) -> None:
        actor = actor_identity("Ram", "Thapa", "ram@example.com")
        payload = transaction_payload({"id": 4, "amount": 12.5}, actor)
        self.assertEqual(payload["transaction"]["amount"], 12.5)
        self.assertEqual(payload["transaction"]["user"], {"firstName": "Ram", "lastName": "Thapa", "email": "ram@example.com"})

    def test_deletion_payload_carries_id(self) -> None:
        payload = deletion_payload(9, actor_identity("A", "B", "a@b.com"))
        self.assertEqual(payload["transactionId"], 9)
        self.assertNotIn("password", payload["user"])


if __name__ == "__main__":
    unittest.main()
