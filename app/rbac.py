"""Socket event registry: which role may send which event and what it is checked against."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from app.models.user import UserRole


class Event(str, Enum):
    ATTENDANCE_MARKED = "ATTENDANCE_MARKED"
    TODAY_SUMMARY = "TODAY_SUMMARY"
    DONE = "DONE"
    MY_ATTENDANCE = "MY_ATTENDANCE"
    ERROR = "ERROR"


# "owner": the sender must be the teacher who opened the running session.
# "enrolled": a session must be running and the sender enrolled in its class.
SessionCheck = Literal["owner", "enrolled"]


@dataclass(frozen=True)
class EventRule:
    role: UserRole
    check: SessionCheck


EVENT_RULES: dict[Event, EventRule] = {
    Event.ATTENDANCE_MARKED: EventRule(UserRole.TEACHER, "owner"),
    Event.TODAY_SUMMARY: EventRule(UserRole.TEACHER, "owner"),
    Event.DONE: EventRule(UserRole.TEACHER, "owner"),
    Event.MY_ATTENDANCE: EventRule(UserRole.STUDENT, "enrolled"),
}

NO_ACTIVE_SESSION = "No active attendance session"
UNKNOWN_EVENT = "Unknown event"
INVALID_MESSAGE = "Invalid message format"
INVALID_PAYLOAD = "Invalid attendance payload"
UNAUTHORIZED = "Unauthorized or invalid token"
CLASS_NOT_FOUND = "Class not found"
EMPTY_CLASS = "There are no students in this class."
UPSTREAM_FAILURE = "Something went wrong! Please try again."

FORBIDDEN_BY_ROLE: dict[UserRole, str] = {
    UserRole.TEACHER: "Forbidden, teacher event only",
    UserRole.STUDENT: "Forbidden, student event only",
}


def rule_for(event_name: str) -> EventRule | None:
    """Look up the rule for a raw event name; ERROR and unknown names have none."""
    try:
        return EVENT_RULES.get(Event(event_name))
    except ValueError:
        return None
