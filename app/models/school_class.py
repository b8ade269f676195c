from datetime import datetime

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class SchoolClass(Document):
    """A class owned by one teacher with its enrolled students."""
    class_name: str
    teacher_id: Indexed(str)
    student_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "classes"
        use_state_management = True


class ClassCreate(BaseModel):
    className: str = Field(min_length=1)


class AddStudentRequest(BaseModel):
    studentId: str = Field(min_length=1)
