"""Classes: creation, enrolment, details and a student's persisted attendance."""
from datetime import datetime

from fastapi import APIRouter, HTTPException, status

from app.api.deps import Coordinator, CurrentIdentity, StudentOnly, TeacherOnly
from app.models.school_class import AddStudentRequest, ClassCreate, SchoolClass
from app.models.user import User, UserRole
from app.realtime.stores import parse_object_id

router = APIRouter()


def _class_out(school_class: SchoolClass) -> dict:
    return {
        "_id": str(school_class.id),
        "className": school_class.class_name,
        "teacherId": school_class.teacher_id,
        "studentIds": list(school_class.student_ids),
    }


async def _get_class_or_404(class_id: str) -> SchoolClass:
    oid = parse_object_id(class_id)
    school_class = await SchoolClass.get(oid) if oid else None
    if not school_class:
        raise HTTPException(status_code=404, detail="Class not found")
    return school_class


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_class(data: ClassCreate, teacher: TeacherOnly):
    school_class = SchoolClass(class_name=data.className, teacher_id=teacher.user_id)
    await school_class.insert()
    return {"success": True, "data": _class_out(school_class)}


@router.post("/{class_id}/add-student")
async def add_student(class_id: str, data: AddStudentRequest, teacher: TeacherOnly):
    school_class = await _get_class_or_404(class_id)
    if school_class.teacher_id != teacher.user_id:
        raise HTTPException(status_code=403, detail="Forbidden, not class teacher")

    oid = parse_object_id(data.studentId)
    student = await User.get(oid) if oid else None
    if not student or student.role != UserRole.STUDENT:
        raise HTTPException(status_code=404, detail="Student not found")

    if data.studentId not in school_class.student_ids:
        school_class.student_ids.append(data.studentId)
        school_class.updated_at = datetime.utcnow()
        await school_class.save()
    return {"success": True, "data": _class_out(school_class)}


@router.get("/{class_id}")
async def get_class(class_id: str, identity: CurrentIdentity):
    school_class = await _get_class_or_404(class_id)
    if identity.role == UserRole.TEACHER and school_class.teacher_id != identity.user_id:
        raise HTTPException(status_code=403, detail="Forbidden, not class teacher")
    if identity.role == UserRole.STUDENT and identity.user_id not in school_class.student_ids:
        raise HTTPException(status_code=403, detail="Forbidden, non-enrolled student")

    oids = [oid for oid in map(parse_object_id, school_class.student_ids) if oid]
    students = await User.find({"_id": {"$in": oids}}).to_list() if oids else []
    return {
        "success": True,
        "data": {
            **_class_out(school_class),
            "students": [{"_id": str(s.id), "name": s.name, "email": s.email} for s in students],
        },
    }


@router.get("/{class_id}/my-attendance")
async def my_attendance(class_id: str, student: StudentOnly, coordinator: Coordinator):
    """Latest persisted status for the calling student, lower-cased, or null."""
    roster = await coordinator.class_store.get_roster(class_id)
    if roster is None:
        raise HTTPException(status_code=404, detail="Class not found")
    if not roster.enrolls(student.user_id):
        raise HTTPException(status_code=403, detail="Forbidden, non-enrolled student")
    status_ = await coordinator.attendance_store.latest_status(roster.class_id, student.user_id)
    return {
        "success": True,
        "data": {"classId": roster.class_id, "status": status_.value.lower() if status_ else None},
    }
