"""Collaborators the live session depends on: identity, class rosters and attendance records."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from pymongo.errors import PyMongoError

from app.config import settings
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.school_class import SchoolClass
from app.models.user import UserRole

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Credential missing, malformed, expired or carrying an unknown role."""


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: UserRole


@dataclass(frozen=True)
class Roster:
    class_id: str
    teacher_id: str
    student_ids: list[str] = field(default_factory=list)

    def enrolls(self, student_id: str) -> bool:
        return student_id in self.student_ids


@dataclass(frozen=True)
class FinalRecord:
    class_id: str
    student_id: str
    status: AttendanceStatus


def parse_object_id(value: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


class JwtIdentityService:
    """Resolves a bearer token to (user id, role) without a database round trip."""

    def __init__(self, secret_key: str | None = None, algorithm: str | None = None):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm

    def verify(self, token: str | None) -> Identity:
        if not token:
            raise AuthenticationError("missing token")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError(str(e)) from e
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("token has no subject")
        try:
            role = UserRole(payload.get("role"))
        except ValueError as e:
            raise AuthenticationError(f"unsupported role {payload.get('role')!r}") from e
        return Identity(user_id=str(user_id), role=role)


class BeanieClassStore:
    async def get_roster(self, class_id: str) -> Optional[Roster]:
        oid = parse_object_id(class_id)
        if oid is None:
            return None
        school_class = await SchoolClass.get(oid)
        if not school_class:
            return None
        return Roster(
            class_id=str(school_class.id),
            teacher_id=school_class.teacher_id,
            student_ids=list(school_class.student_ids),
        )


class BeanieAttendanceStore:
    async def save_batch(self, records: list[FinalRecord], started_at: Optional[datetime] = None) -> None:
        """Insert one record per student; on failure remove whatever part of the batch landed."""
        if not records:
            return
        class_id = records[0].class_id
        now = datetime.utcnow()
        try:
            await AttendanceRecord.insert_many(
                [
                    AttendanceRecord(
                        class_id=r.class_id,
                        student_id=r.student_id,
                        status=r.status,
                        session_started_at=started_at,
                        recorded_at=now,
                    )
                    for r in records
                ]
            )
        except PyMongoError as e:
            logger.error(f"Attendance batch for class {class_id} failed, removing partial writes: {e}")
            await AttendanceRecord.find(
                {"class_id": class_id, "session_started_at": started_at, "recorded_at": now}
            ).delete()
            raise
        logger.info(f"Persisted {len(records)} attendance records for class {class_id}")

    async def latest_status(self, class_id: str, student_id: str) -> Optional[AttendanceStatus]:
        record = (
            await AttendanceRecord.find({"class_id": class_id, "student_id": student_id})
            .sort("-recorded_at")
            .first_or_none()
        )
        return record.status if record else None
