"""Wires the live session pieces together and serves one socket for its lifetime."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import WebSocket

from app.config import settings
from app.realtime.connections import Connection, ConnectionRegistry
from app.realtime.dispatcher import EventDispatcher
from app.realtime.gate import AuthorizationGate
from app.realtime.session import AttendanceSession
from app.realtime.stores import (
    AuthenticationError,
    BeanieAttendanceStore,
    BeanieClassStore,
    JwtIdentityService,
)

logger = logging.getLogger(__name__)


class AttendanceCoordinator:
    def __init__(
        self,
        identity_service,
        class_store,
        attendance_store,
        reset_on_teacher_mismatch: bool = True,
    ):
        self.class_store = class_store
        self.attendance_store = attendance_store
        self.session = AttendanceSession()
        self.registry = ConnectionRegistry(identity_service)
        self.gate = AuthorizationGate(class_store, reset_on_teacher_mismatch=reset_on_teacher_mismatch)
        self.dispatcher = EventDispatcher(
            self.session, self.registry, self.gate, class_store, attendance_store
        )

    async def serve(self, websocket: WebSocket, token: Optional[str]) -> None:
        await websocket.accept()
        connection = Connection(websocket)
        await self.registry.register(connection)
        try:
            identity = await self.registry.authenticate(connection, token)
        except AuthenticationError:
            return
        logger.info(f"Socket connected: {identity.role.value} {identity.user_id}")
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                if not await self.dispatcher.dispatch(connection, raw):
                    break
        finally:
            await self.registry.remove(connection)
            logger.info(f"Socket disconnected: {identity.role.value} {identity.user_id}")


def build_coordinator() -> AttendanceCoordinator:
    return AttendanceCoordinator(
        identity_service=JwtIdentityService(),
        class_store=BeanieClassStore(),
        attendance_store=BeanieAttendanceStore(),
        reset_on_teacher_mismatch=settings.reset_session_on_teacher_mismatch,
    )
