"""Beanie document models and Pydantic schemas."""
from app.models.user import User, UserRole, UserCreate, LoginRequest, UserOut
from app.models.school_class import SchoolClass, ClassCreate, AddStudentRequest
from app.models.attendance import AttendanceRecord, AttendanceStatus, StartAttendanceRequest

__all__ = [
    "User",
    "UserRole",
    "UserCreate",
    "LoginRequest",
    "UserOut",
    "SchoolClass",
    "ClassCreate",
    "AddStudentRequest",
    "AttendanceRecord",
    "AttendanceStatus",
    "StartAttendanceRequest",
]
