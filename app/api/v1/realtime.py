"""Admin notification socket: connect, then prove admin identity to join the broadcast group.

Client -> server messages are JSON objects with an "event" key:
  {"event": "join-admin", "token": "<admin JWT>"}
  {"event": "ping"}
Server -> client messages use the same envelope with a "data" key, e.g.
  {"event": "transaction-added", "data": {...}}
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import ROLE_ADMIN, subject_for_role
from app.services.accounts import get_active_admin
from app.services.notifications import AdminSession, NotificationHub, SessionState, get_hub

logger = logging.getLogger(__name__)
router = APIRouter()

JOIN_ADMIN = "join-admin"
ADMIN_JOINED = "admin-joined"
PING = "ping"
PONG = "pong"
ERROR = "error"


def _error(message: str) -> dict[str, Any]:
    return {"event": ERROR, "data": {"message": message}}


async def _verify_admin(db: Session, token: Any) -> int | None:
    """Return the id of the active admin the token was issued to, else None."""
    if not isinstance(token, str) or not token:
        return None
    admin_id = subject_for_role(token, ROLE_ADMIN)
    if admin_id is None:
        return None
    try:
        admin = await run_in_threadpool(get_active_admin, db, admin_id)
    finally:
        # the socket may stay open for hours; do not pin a pooled connection
        db.close()
    return admin.id if admin is not None else None


async def _handle(
    message: Any,
    session: AdminSession,
    websocket: WebSocket,
    db: Session,
    notifications: NotificationHub,
) -> None:
    if not isinstance(message, dict):
        await websocket.send_json(_error("Messages must be JSON objects."))
        return
    event = message.get("event")
    if event == PING:
        await websocket.send_json({"event": PONG})
    elif event == JOIN_ADMIN:
        if session.state is SessionState.JOINED:
            await websocket.send_json({"event": ADMIN_JOINED})
            return
        admin_id = await _verify_admin(db, message.get("token"))
        if session.state is SessionState.DISCONNECTED:
            return
        if admin_id is None:
            logger.info("Admin join refused: session=%s", session.id)
            await websocket.send_json(_error("Admin authentication required."))
            return
        notifications.join(session, admin_id)
        await websocket.send_json({"event": ADMIN_JOINED})
    else:
        await websocket.send_json(_error(f"Unknown event: {event!r}"))


@router.websocket("/admin")
async def admin_socket(
    websocket: WebSocket,
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationHub, Depends(get_hub)],
) -> None:
    """Live transaction events for admins; nothing is sent until join-admin succeeds."""
    await websocket.accept()
    session = notifications.connect(websocket)
    try:
        # the hub closes sessions it drops; stop serving them as well
        while session.state is not SessionState.DISCONNECTED:
            raw = await websocket.receive_text()
            if session.state is SessionState.DISCONNECTED:
                break
            try:
                message = json.loads(raw)
            except ValueError:
                await websocket.send_json(_error("Malformed JSON."))
                continue
            await _handle(message, session, websocket, db, notifications)
    except WebSocketDisconnect:
        pass
    finally:
        notifications.disconnect(session)
