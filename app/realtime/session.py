"""The one live attendance session the process can run at a time.

Every read and write goes through :class:`AttendanceSession`. Handlers that
need to check the session and then act on it hold ``session.lock`` for the
whole sequence, including any awaited store call, so a second DONE (or an
``open`` for the next class) cannot slip in between the check and the reset.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from app.models.attendance import AttendanceStatus
from app.rbac import CLASS_NOT_FOUND, EMPTY_CLASS
from app.realtime.stores import FinalRecord

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """DONE could not run; the session is left exactly as it was."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Summary:
    present: int = 0
    absent: int = 0
    total: int = 0

    @classmethod
    def of(cls, statuses) -> "Summary":
        statuses = list(statuses)
        present = sum(1 for s in statuses if s is AttendanceStatus.PRESENT)
        return cls(present=present, absent=len(statuses) - present, total=len(statuses))

    def as_dict(self) -> dict[str, int]:
        return {"present": self.present, "absent": self.absent, "total": self.total}


@dataclass(frozen=True)
class SessionSnapshot:
    class_id: Optional[str]
    teacher_id: Optional[str]
    started_at: Optional[datetime]
    counts: Summary


@dataclass
class CompletionResult:
    class_id: str
    records: list[FinalRecord] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)


class AttendanceSession:
    def __init__(self):
        self.lock = asyncio.Lock()
        self._clear()

    def _clear(self) -> None:
        self.class_id: Optional[str] = None
        self.teacher_id: Optional[str] = None
        self.started_at: Optional[datetime] = None
        self.attendance: dict[str, AttendanceStatus] = {}

    def is_active(self) -> bool:
        return self.class_id is not None and self.teacher_id is not None

    def is_owned_by(self, user_id: str) -> bool:
        return self.is_active() and self.teacher_id == user_id

    async def open(self, class_id: str, teacher_id: str) -> datetime:
        """Start a session for ``class_id``, discarding whatever was running before."""
        async with self.lock:
            if self.is_active():
                logger.warning(
                    f"Abandoning unfinished session for class {self.class_id} "
                    f"({len(self.attendance)} marks) in favour of class {class_id}"
                )
            self._clear()
            self.class_id = class_id
            self.teacher_id = teacher_id
            self.started_at = datetime.now(timezone.utc)
            logger.info(f"Attendance session opened for class {class_id} by teacher {teacher_id}")
            return self.started_at

    def mark(self, student_id: str, status: AttendanceStatus) -> None:
        """Record a mark; the latest one for a student wins. Caller holds ``lock``."""
        self.attendance[student_id] = status

    def status_of(self, student_id: str) -> Optional[AttendanceStatus]:
        return self.attendance.get(student_id)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            class_id=self.class_id,
            teacher_id=self.teacher_id,
            started_at=self.started_at,
            counts=Summary.of(self.attendance.values()),
        )

    def reset(self) -> None:
        if self.is_active():
            logger.info(f"Attendance session for class {self.class_id} reset to idle")
        self._clear()

    async def close(self, class_store, attendance_store) -> CompletionResult:
        """Persist one record per enrolled student and go idle. Caller holds ``lock``.

        The roster is read now, not at open time. Students marked but no longer
        enrolled are dropped; enrolled students never marked become Absent.
        Raises :class:`CompletionError` when the class is gone or empty; store
        errors propagate. Either way nothing is reset.
        """
        class_id = self.class_id
        roster = await class_store.get_roster(class_id)
        if roster is None:
            raise CompletionError(CLASS_NOT_FOUND)
        if not roster.student_ids:
            raise CompletionError(EMPTY_CLASS)

        final = {
            student_id: self.attendance.get(student_id, AttendanceStatus.ABSENT)
            for student_id in dict.fromkeys(roster.student_ids)
        }
        records = [FinalRecord(class_id, student_id, status) for student_id, status in final.items()]
        await attendance_store.save_batch(records, started_at=self.started_at)

        result = CompletionResult(class_id=class_id, records=records, summary=Summary.of(final.values()))
        logger.info(
            f"Attendance session for class {class_id} completed: "
            f"{result.summary.present} present, {result.summary.absent} absent"
        )
        self._clear()
        return result
