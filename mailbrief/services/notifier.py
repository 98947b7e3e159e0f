"""
Real-time delivery of pipeline events over Socket.IO.

Each connected session joins the room of the account it belongs to, so a
completion event reaches every tab that account has open and nobody else.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set
from urllib.parse import parse_qs

import socketio

from mailbrief.infrastructure.contracts import Notifier

logger = logging.getLogger(__name__)


def account_room(account_id: str) -> str:
    return f"account:{account_id}"


def create_socket_server(cors_origins, redis_url: str = "") -> socketio.AsyncServer:
    """AsyncServer for the ASGI app; with a Redis URL events fan out across processes."""
    client_manager = socketio.AsyncRedisManager(redis_url) if redis_url else None
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_origins,
        client_manager=client_manager,
        transports=["websocket", "polling"],
        ping_timeout=30,
        ping_interval=15,
    )


def _account_from_handshake(environ: Dict[str, Any], auth: Optional[Dict[str, Any]]) -> Optional[str]:
    if isinstance(auth, dict) and auth.get("account_id"):
        return str(auth["account_id"])
    query = parse_qs(environ.get("QUERY_STRING", ""))
    values = query.get("account_id")
    return values[0] if values else None


class SocketIONotifier(Notifier):

    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio
        self._setup_done = False
        self._pending: Set[asyncio.Task] = set()

    def setup(self) -> None:
        """Register connection handlers. Called once at startup; repeated calls do nothing."""
        if self._setup_done:
            return
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self._setup_done = True
        logger.info("[NOTIFY] Socket.IO handlers registered")

    async def _on_connect(self, sid, environ, auth=None):
        account_id = _account_from_handshake(environ, auth)
        if not account_id:
            logger.warning(f"[NOTIFY] Refusing connection {sid}: no account_id")
            return False

        await self.sio.enter_room(sid, account_room(account_id))
        await self.sio.emit("connection_status", {"status": "connected"}, to=sid)
        logger.info(f"[NOTIFY] Session {sid} joined {account_room(account_id)}")
        return True

    async def _on_disconnect(self, sid, *args):
        logger.info(f"[NOTIFY] Session {sid} disconnected")

    async def notify(self, account_id: str, event: str, data: Dict[str, Any]) -> None:
        task = asyncio.create_task(self._emit(account_id, event, data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _emit(self, account_id: str, event: str, data: Dict[str, Any]) -> None:
        try:
            await self.sio.emit(event, data, room=account_room(account_id))
        except Exception as e:
            logger.warning(f"[NOTIFY] {event} emit to {account_id} failed: {type(e).__name__}")

    async def flush(self) -> None:
        """Wait for emits still in progress."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
