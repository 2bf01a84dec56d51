"""
Socket.IO push for handoff status.

The web client that created a handoff joins the token's room and receives a
``handoff:status`` event on every transition instead of polling.
"""

import logging
from typing import Any, Dict

from flask import current_app
from flask_socketio import SocketIO, emit, join_room

from linkpage.audit_logger import short
from linkpage.errors import LinkPageError

logger = logging.getLogger(__name__)

socketio = SocketIO()

WATCH_EVENT = "handoff:watch"
STATUS_EVENT = "handoff:status"
ERROR_EVENT = "handoff:error"


def room_for(token: str) -> str:
    return f"handoff:{token}"


def notify_handoff(token: str, status: Dict[str, Any]) -> None:
    """Push ``status`` to every client watching ``token``."""
    socketio.emit(STATUS_EVENT, {"token": token, **status}, to=room_for(token))


@socketio.on(WATCH_EVENT)
def watch_handoff(data):
    token = (data or {}).get("token") if isinstance(data, dict) else None
    store = current_app.extensions["linkpage"]["handoffs"]
    try:
        status = store.get_status(token)
    except LinkPageError as e:
        emit(ERROR_EVENT, e.to_dict())
        return

    join_room(room_for(token))
    logger.info(f"Client watching handoff {short(token)}")
    emit(STATUS_EVENT, {"token": token, **status})


@socketio.on_error_default
def default_error_handler(e):
    """Handle SocketIO errors."""
    logger.error(f"SocketIO error: {e}", exc_info=True)
