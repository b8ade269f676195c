"""Teachers and students."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"


class User(Document):
    """User document; the role decides which HTTP routes and socket events are open to it."""

    name: str
    email: Indexed(EmailStr, unique=True)
    hashed_password: str
    role: UserRole = UserRole.STUDENT
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
        use_state_management = True


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(serialization_alias="_id")
    name: Optional[str] = None
    email: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(id=str(user.id), name=user.name, email=user.email, role=user.role)
