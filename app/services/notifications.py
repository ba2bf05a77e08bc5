"""Notification hub: push transaction events to every connected admin session.

A connection starts in the connecting state and only joins the admin group after
it presents a valid admin token. Each joined session has its own outbox drained
by a writer task, so broadcast only enqueues and never waits on a socket. A
session sees events in the order broadcast was called. Broadcast is called on the
event loop as each write returns, so two writes committed at nearly the same
moment may be announced in either order.

There is no retry or persistence: an admin that is offline simply misses the
event, and a session whose send fails, times out or whose outbox overflows is
dropped and its socket closed.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from app.core.config import get_settings

logger = logging.getLogger(__name__)

TRANSACTION_ADDED = "transaction-added"
TRANSACTION_UPDATED = "transaction-updated"
TRANSACTION_DELETED = "transaction-deleted"
TRANSACTION_EVENTS = (TRANSACTION_ADDED, TRANSACTION_UPDATED, TRANSACTION_DELETED)

OUTBOX_LIMIT = 256
CLOSE_CODE_SEND_FAILED = 1011

Subscriber = Callable[[str, dict[str, Any]], Awaitable[None] | None]


class Channel(Protocol):
    """Anything that can push a JSON message to one client (e.g. a Starlette WebSocket)."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class SessionState(str, Enum):
    CONNECTING = "connecting"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


@dataclass
class AdminSession:
    """One live connection and where it is in the connect/join/disconnect lifecycle."""

    channel: Channel
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.CONNECTING
    admin_id: int | None = None
    outbox: asyncio.Queue | None = field(default=None, repr=False)
    writer: asyncio.Task | None = field(default=None, repr=False)


class NotificationHub:
    """
    Registry of admin sessions plus in-process event subscribers.

    Join and leave are single dict insert/remove operations on the event loop, and
    broadcast iterates a snapshot, so sessions may come and go mid-broadcast.
    """

    def __init__(self, send_timeout: float | None = None, outbox_limit: int = OUTBOX_LIMIT) -> None:
        self._sessions: dict[str, AdminSession] = {}
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._send_timeout = send_timeout
        self._outbox_limit = outbox_limit
        self._closing: set[asyncio.Task] = set()

    @property
    def send_timeout(self) -> float:
        if self._send_timeout is not None:
            return self._send_timeout
        return get_settings().NOTIFY_SEND_TIMEOUT_SEC

    # Connection lifecycle

    def connect(self, channel: Channel) -> AdminSession:
        session = AdminSession(channel=channel)
        self._sessions[session.id] = session
        logger.info("Admin socket connected: session=%s", session.id)
        return session

    def join(self, session: AdminSession, admin_id: int) -> None:
        """Move a connecting session into the admin group."""
        if session.state is SessionState.DISCONNECTED or session.id not in self._sessions:
            raise ValueError("Cannot join a disconnected session")
        session.admin_id = admin_id
        session.state = SessionState.JOINED
        logger.info("Admin joined admin group: session=%s admin_id=%s", session.id, admin_id)

    def disconnect(self, session: AdminSession) -> None:
        """Forget a session whose socket has gone away; pending events are discarded."""
        if self._sessions.pop(session.id, None) is not None:
            logger.info("Admin socket disconnected: session=%s", session.id)
        session.state = SessionState.DISCONNECTED
        _discard_backlog(session)
        if session.writer is not None:
            session.writer.cancel()

    def joined_sessions(self) -> list[AdminSession]:
        return [s for s in self._sessions.values() if s.state is SessionState.JOINED]

    @property
    def joined_count(self) -> int:
        return len(self.joined_sessions())

    # In-process subscribers

    def subscribe(self, event: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register callback for event; returns a function that removes this one registration.

        Several callbacks may listen to the same event; subscribing again never
        replaces an earlier subscriber.
        """
        self._subscribers.setdefault(event, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(event, None)

        return unsubscribe

    async def _notify_subscribers(self, event: str, payload: dict[str, Any]) -> None:
        for callback in list(self._subscribers.get(event, [])):
            try:
                result = callback(event, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Subscriber for %s failed", event)

    # Fan-out

    def _outbox(self, session: AdminSession) -> asyncio.Queue:
        if session.outbox is None:
            session.outbox = asyncio.Queue(maxsize=self._outbox_limit)
        if session.writer is None:
            session.writer = asyncio.create_task(self._drain(session))
        return session.outbox

    async def _drain(self, session: AdminSession) -> None:
        """Writer task: send queued messages to one session until it is dropped."""
        outbox = session.outbox
        while True:
            message = await outbox.get()
            try:
                await asyncio.wait_for(session.channel.send_json(message), timeout=self.send_timeout)
            except Exception as e:
                logger.warning(
                    "Dropping admin session %s after failed send: %s",
                    session.id,
                    e.__class__.__name__,
                )
                self._drop(session)
                return
            finally:
                outbox.task_done()

    def _drop(self, session: AdminSession) -> None:
        """Remove a session the hub can no longer serve and close its socket."""
        self._sessions.pop(session.id, None)
        session.state = SessionState.DISCONNECTED
        _discard_backlog(session)
        writer = session.writer
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
        task = asyncio.create_task(self._close(session))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, session: AdminSession) -> None:
        try:
            await asyncio.wait_for(
                session.channel.close(code=CLOSE_CODE_SEND_FAILED), timeout=self.send_timeout
            )
        except Exception as e:
            # the peer is usually gone already
            logger.debug("Closing admin session %s failed: %s", session.id, e.__class__.__name__)

    async def broadcast(self, event: str, payload: dict[str, Any]) -> int:
        """
        Queue {"event": event, "data": payload} for every joined session.

        Returns the number of sessions the event was queued for. Never raises and
        never waits on a socket; delivery happens in each session's writer task.
        """
        message = {"event": event, "data": payload}
        targets = self.joined_sessions()
        queued = 0
        for session in targets:
            try:
                self._outbox(session).put_nowait(message)
                queued += 1
            except asyncio.QueueFull:
                logger.warning("Dropping admin session %s: outbox full", session.id)
                self._drop(session)
        await self._notify_subscribers(event, payload)
        logger.debug("Broadcast %s queued for %s/%s admin sessions", event, queued, len(targets))
        return queued

    async def wait_idle(self) -> None:
        """Wait until every live session's outbox has been sent or discarded."""
        outboxes = [s.outbox for s in list(self._sessions.values()) if s.outbox is not None]
        await asyncio.gather(*(outbox.join() for outbox in outboxes))
        if self._closing:
            await asyncio.gather(*list(self._closing))


def _discard_backlog(session: AdminSession) -> None:
    outbox = session.outbox
    if outbox is None:
        return
    while True:
        try:
            outbox.get_nowait()
        except asyncio.QueueEmpty:
            return
        outbox.task_done()


def actor_identity(first_name: str, last_name: str, email: str) -> dict[str, str]:
    """Display identity of the user behind an event (never credentials)."""
    return {"firstName": first_name, "lastName": last_name, "email": email}


def transaction_payload(transaction: dict[str, Any], actor: dict[str, str]) -> dict[str, Any]:
    """Payload for transaction-added and transaction-updated."""
    return {"transaction": {**transaction, "user": actor}}


def deletion_payload(transaction_id: int, actor: dict[str, str]) -> dict[str, Any]:
    """Payload for transaction-deleted."""
    return {"transactionId": transaction_id, "user": actor}


hub = NotificationHub()


def get_hub() -> NotificationHub:
    """Dependency returning the process-wide hub (overridable in tests)."""
    return hub
