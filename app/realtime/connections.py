"""Live socket connections, their identities, and best-effort fan-out."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from app.rbac import Event, UNAUTHORIZED
from app.realtime.stores import AuthenticationError, Identity

logger = logging.getLogger(__name__)


def event_message(event: Event | str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"event": event.value if isinstance(event, Event) else event, "data": data or {}}


def error_message(message: str) -> Dict[str, Any]:
    return event_message(Event.ERROR, {"message": message})


class Connection:
    """One socket plus the identity it authenticated as."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.identity: Optional[Identity] = None

    async def send(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_json(message)

    async def close(self) -> None:
        if self.websocket.application_state != WebSocketState.DISCONNECTED:
            await self.websocket.close()


class ConnectionRegistry:
    def __init__(self, identity_service):
        self.identity_service = identity_service
        self._lock = asyncio.Lock()
        self._connections: List[Connection] = []

    def __len__(self) -> int:
        return len(self._connections)

    async def register(self, connection: Connection) -> None:
        async with self._lock:
            self._connections.append(connection)

    async def remove(self, connection: Connection) -> None:
        async with self._lock:
            self._connections = [c for c in self._connections if c is not connection]

    async def authenticate(self, connection: Connection, credential: Optional[str]) -> Identity:
        """Attach an identity to ``connection`` or notify it once, close it and re-raise."""
        try:
            identity = self.identity_service.verify(credential)
        except AuthenticationError as e:
            logger.info(f"Rejected socket connection: {e}")
            await self.unicast(connection, error_message(UNAUTHORIZED))
            await connection.close()
            await self.remove(connection)
            raise
        connection.identity = identity
        return identity

    async def for_each(self, fn: Callable[[Connection], Awaitable[None]]) -> None:
        async with self._lock:
            connections = list(self._connections)
        for connection in connections:
            await fn(connection)

    async def notify(self, predicate: Callable[[Connection], bool], message: Dict[str, Any]) -> None:
        """Send to every registered connection matching ``predicate``; drop the ones that fail."""
        stale: List[Connection] = []

        async def deliver(connection: Connection) -> None:
            if not predicate(connection):
                return
            if not await self._send(connection, message):
                stale.append(connection)

        await self.for_each(deliver)
        for connection in stale:
            await self.remove(connection)

    async def broadcast_to_all(self, message: Dict[str, Any]) -> None:
        await self.notify(lambda connection: connection.identity is not None, message)

    async def unicast(self, connection: Connection, message: Dict[str, Any]) -> None:
        await self._send(connection, message)

    async def _send(self, connection: Connection, message: Dict[str, Any]) -> bool:
        try:
            await connection.send(message)
            return True
        except Exception as e:
            logger.debug(f"Dropped {message.get('event')} for a closed connection: {e}")
            return False
