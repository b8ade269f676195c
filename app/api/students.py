from fastapi import APIRouter

from app.api.deps import TeacherOnly
from app.models.user import User, UserRole

router = APIRouter()


@router.get("")
async def list_students(teacher: TeacherOnly):
    """All student accounts, for teachers building a class."""
    students = await User.find({"role": UserRole.STUDENT.value}).to_list()
    return {
        "success": True,
        "data": [{"_id": str(s.id), "name": s.name, "email": s.email} for s in students],
    }
