"""Opening a live attendance session over HTTP; the socket takes it from there."""
from fastapi import APIRouter, HTTPException

from app.api.deps import Coordinator, TeacherOnly
from app.models.attendance import StartAttendanceRequest

router = APIRouter()


@router.post("/start")
async def start_attendance(data: StartAttendanceRequest, teacher: TeacherOnly, coordinator: Coordinator):
    """Start a session for one of the teacher's classes, replacing any running session."""
    roster = await coordinator.class_store.get_roster(data.classId)
    if roster is None:
        raise HTTPException(status_code=404, detail="Class not found")
    if roster.teacher_id != teacher.user_id:
        raise HTTPException(status_code=403, detail="Forbidden, not class teacher")

    started_at = await coordinator.session.open(roster.class_id, teacher.user_id)
    return {
        "success": True,
        "data": {
            "classId": roster.class_id,
            "startedAt": started_at.isoformat().replace("+00:00", "Z"),
        },
    }
