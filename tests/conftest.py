"""
Shared test fixtures for the attendance service.

Provides: in-memory class/attendance stores, fake socket connections, tokens
Dependencies: pytest, pytest-asyncio, fastapi
System role: Test infrastructure; nothing here talks to MongoDB
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "true")

import pytest

from app.api.deps import create_access_token
from app.models.user import UserRole
from app.realtime.connections import Connection
from app.realtime.coordinator import AttendanceCoordinator
from app.realtime.stores import Identity, JwtIdentityService, Roster

CLASS_ID = "class-1"
TEACHER_ID = "teacher-1"
STUDENT_A = "student-a"
STUDENT_B = "student-b"
OUTSIDER = "student-z"


class FakeClassStore:
    """Roster lookups served from a dict; ``fail`` simulates an unreachable database."""

    def __init__(self, rosters=None):
        self.rosters = dict(rosters or {})
        self.fail = False
        self.calls = 0

    async def get_roster(self, class_id):
        self.calls += 1
        if self.fail:
            raise ConnectionError("class store unavailable")
        return self.rosters.get(class_id)


class FakeAttendanceStore:
    """Records batch writes; set ``release`` to hold a write open until it is set."""

    def __init__(self):
        self.batches = []
        self.release = None
        self.fail = False

    async def save_batch(self, records, started_at=None):
        if self.release is not None:
            await self.release.wait()
        if self.fail:
            raise ConnectionError("attendance store unavailable")
        self.batches.append(list(records))

    async def latest_status(self, class_id, student_id):
        for batch in reversed(self.batches):
            for record in batch:
                if record.class_id == class_id and record.student_id == student_id:
                    return record.status
        return None


class FakeConnection(Connection):
    """Connection that keeps what it was sent instead of writing to a socket."""

    def __init__(self, identity=None, broken=False):
        self.websocket = None
        self.identity = identity
        self.broken = broken
        self.closed = False
        self.sent = []

    async def send(self, message):
        if self.broken or self.closed:
            raise RuntimeError("socket is closed")
        self.sent.append(message)

    async def close(self):
        self.closed = True

    def events(self):
        return [m["event"] for m in self.sent]


def teacher_identity(user_id=TEACHER_ID):
    return Identity(user_id=user_id, role=UserRole.TEACHER)


def student_identity(user_id=STUDENT_A):
    return Identity(user_id=user_id, role=UserRole.STUDENT)


def token_for(identity):
    return create_access_token(identity.user_id, identity.role.value)


@pytest.fixture
def class_store():
    return FakeClassStore(
        {CLASS_ID: Roster(class_id=CLASS_ID, teacher_id=TEACHER_ID, student_ids=[STUDENT_A, STUDENT_B])}
    )


@pytest.fixture
def attendance_store():
    return FakeAttendanceStore()


@pytest.fixture
def coordinator(class_store, attendance_store):
    return AttendanceCoordinator(
        identity_service=JwtIdentityService(),
        class_store=class_store,
        attendance_store=attendance_store,
    )
