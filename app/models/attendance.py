from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"

    @classmethod
    def normalize(cls, value) -> Optional["AttendanceStatus"]:
        """Map any casing of present/absent to the canonical member, else None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        return None


class AttendanceRecord(Document):
    """Final status of one student for one completed live session."""
    class_id: Indexed(str)
    student_id: Indexed(str)
    status: AttendanceStatus
    session_started_at: Optional[datetime] = None
    recorded_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "attendance_records"


class StartAttendanceRequest(BaseModel):
    classId: str = Field(min_length=1)
