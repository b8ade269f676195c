"""Routes inbound socket messages to the handler for (role, event)."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.models.attendance import AttendanceStatus
from app.models.user import UserRole
from app.rbac import INVALID_MESSAGE, INVALID_PAYLOAD, UPSTREAM_FAILURE, Event
from app.realtime.connections import Connection, ConnectionRegistry, error_message, event_message
from app.realtime.gate import AuthorizationGate
from app.realtime.session import AttendanceSession, CompletionError
from app.realtime.stores import Identity

logger = logging.getLogger(__name__)

PERSISTED_MESSAGE = "Attendance persisted"
NOT_YET_UPDATED = "not yet updated"


@dataclass(frozen=True)
class InboundMessage:
    event: str
    data: Dict[str, Any]

    @classmethod
    def parse(cls, raw: str | bytes) -> Optional["InboundMessage"]:
        """Decode one frame; None only when it is not a JSON object.

        A missing or non-string ``event`` becomes "", which no rule matches.
        A ``data`` that is not an object is treated as empty.
        """
        try:
            decoded = json.loads(raw)
        except (ValueError, TypeError):
            return None
        if not isinstance(decoded, dict):
            return None
        event = decoded.get("event")
        data = decoded.get("data")
        return cls(
            event=event if isinstance(event, str) else "",
            data=data if isinstance(data, dict) else {},
        )


class MarkPayload(BaseModel):
    studentId: str = Field(min_length=1)
    status: AttendanceStatus

    @field_validator("status", mode="before")
    @classmethod
    def _canonical_status(cls, value):
        status = AttendanceStatus.normalize(value)
        if status is None:
            raise ValueError("status must be Present or Absent")
        return status


@dataclass(frozen=True)
class Outgoing:
    """A message to deliver once the session lock is released; no target means broadcast."""
    message: Dict[str, Any]
    target: Optional[Connection] = None


Handler = Callable[[Connection, Identity, Dict[str, Any]], Awaitable[List[Outgoing]]]


class EventDispatcher:
    def __init__(
        self,
        session: AttendanceSession,
        registry: ConnectionRegistry,
        gate: AuthorizationGate,
        class_store,
        attendance_store,
    ):
        self.session = session
        self.registry = registry
        self.gate = gate
        self.class_store = class_store
        self.attendance_store = attendance_store
        self.handlers: Dict[Tuple[UserRole, Event], Handler] = {
            (UserRole.TEACHER, Event.ATTENDANCE_MARKED): self.handle_attendance_marked,
            (UserRole.TEACHER, Event.TODAY_SUMMARY): self.handle_today_summary,
            (UserRole.TEACHER, Event.DONE): self.handle_done,
            (UserRole.STUDENT, Event.MY_ATTENDANCE): self.handle_my_attendance,
        }

    async def dispatch(self, connection: Connection, raw: str | bytes) -> bool:
        """Handle one inbound frame. Returns False once the connection has been closed."""
        message = InboundMessage.parse(raw)
        if message is None:
            await self.registry.unicast(connection, error_message(INVALID_MESSAGE))
            await connection.close()
            return False

        identity = connection.identity
        if identity is None:
            await connection.close()
            return False

        outbox = await self._decide(connection, identity, message)
        for outgoing in outbox:
            if outgoing.target is None:
                await self.registry.broadcast_to_all(outgoing.message)
            else:
                await self.registry.unicast(outgoing.target, outgoing.message)
        return True

    async def _decide(self, connection: Connection, identity: Identity, message: InboundMessage) -> List[Outgoing]:
        """Gate and run the handler under the session lock; delivery happens after release."""
        async with self.session.lock:
            try:
                decision = await self.gate.authorize(identity, message.event, self.session)
                if not decision.allowed:
                    if decision.reset_session:
                        logger.warning(
                            f"Teacher {identity.user_id} sent {message.event} against a session "
                            f"owned by {self.session.teacher_id}; discarding it as stale"
                        )
                        self.session.reset()
                    return [Outgoing(error_message(decision.reason), connection)]
                handler = self.handlers[(identity.role, Event(message.event))]
                return await handler(connection, identity, message.data)
            except Exception:
                logger.exception(f"Failed to handle {message.event!r} from user {identity.user_id}")
                return [Outgoing(error_message(UPSTREAM_FAILURE), connection)]

    async def handle_attendance_marked(self, connection: Connection, identity: Identity, data: Dict[str, Any]) -> List[Outgoing]:
        try:
            payload = MarkPayload.model_validate(data)
        except ValidationError:
            return [Outgoing(error_message(INVALID_PAYLOAD), connection)]
        self.session.mark(payload.studentId, payload.status)
        return [
            Outgoing(
                event_message(
                    Event.ATTENDANCE_MARKED,
                    {"studentId": payload.studentId, "status": payload.status.value},
                )
            )
        ]

    async def handle_today_summary(self, connection: Connection, identity: Identity, data: Dict[str, Any]) -> List[Outgoing]:
        counts = self.session.snapshot().counts
        return [Outgoing(event_message(Event.TODAY_SUMMARY, counts.as_dict()))]

    async def handle_my_attendance(self, connection: Connection, identity: Identity, data: Dict[str, Any]) -> List[Outgoing]:
        status = self.session.status_of(identity.user_id)
        return [
            Outgoing(
                event_message(Event.MY_ATTENDANCE, {"status": status.value if status else NOT_YET_UPDATED}),
                connection,
            )
        ]

    async def handle_done(self, connection: Connection, identity: Identity, data: Dict[str, Any]) -> List[Outgoing]:
        try:
            result = await self.session.close(self.class_store, self.attendance_store)
        except CompletionError as e:
            return [Outgoing(error_message(e.message), connection)]
        return [Outgoing(event_message(Event.DONE, {"message": PERSISTED_MESSAGE, **result.summary.as_dict()}))]
