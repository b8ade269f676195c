from unittest.mock import AsyncMock, MagicMock

import pytest
from beanie import PydanticObjectId
from fastapi.testclient import TestClient

from app.api.deps import get_password_hash
from app.models.attendance import AttendanceRecord
from app.models.school_class import SchoolClass
from app.models.user import User, UserRole
from app.realtime.stores import Identity
from tests.conftest import token_for

PASSWORD = "secret123"


@pytest.fixture
def client(coordinator, monkeypatch):
    """App client with MongoDB startup patched out and in-memory stores behind the session."""
    from app import main

    monkeypatch.setattr(main, "init_db", AsyncMock())
    monkeypatch.setattr(main, "db_shutdown", AsyncMock())
    monkeypatch.setattr(main.app.state, "coordinator", coordinator)
    with TestClient(main.app) as test_client:
        yield test_client


def bearer(identity):
    return {"Authorization": f"Bearer {token_for(identity)}"}


class Documents:
    """Users and classes kept in dicts, with the Beanie calls the routes make patched onto them."""

    def __init__(self, monkeypatch):
        self.users = {}
        self.classes = {}
        self.saved = []
        for model in (User, SchoolClass, AttendanceRecord):
            monkeypatch.setattr(model, "get_motor_collection", MagicMock())

        async def insert_user(user, *args, **kwargs):
            user.id = PydanticObjectId()
            self.users[user.id] = user
            return user

        async def insert_class(school_class, *args, **kwargs):
            school_class.id = PydanticObjectId()
            self.classes[school_class.id] = school_class
            return school_class

        async def save_class(school_class, *args, **kwargs):
            self.saved.append(school_class)
            return school_class

        monkeypatch.setattr(User, "insert", insert_user)
        monkeypatch.setattr(User, "get", AsyncMock(side_effect=self.users.get))
        monkeypatch.setattr(User, "find_one", AsyncMock(side_effect=self._find_user))
        monkeypatch.setattr(User, "find", MagicMock(side_effect=self._find_users))
        monkeypatch.setattr(SchoolClass, "insert", insert_class)
        monkeypatch.setattr(SchoolClass, "save", save_class)
        monkeypatch.setattr(SchoolClass, "get", AsyncMock(side_effect=self.classes.get))

    def _find_user(self, query):
        return next((u for u in self.users.values() if u.email == query["email"]), None)

    def _find_users(self, query):
        users = list(self.users.values())
        if "role" in query:
            users = [u for u in users if u.role.value == query["role"]]
        if "_id" in query:
            users = [u for u in users if u.id in query["_id"]["$in"]]
        return MagicMock(to_list=AsyncMock(return_value=users))

    def add_user(self, name, role, password=PASSWORD):
        user = User(
            id=PydanticObjectId(),
            name=name,
            email=f"{name.lower()}@school.org",
            hashed_password=get_password_hash(password),
            role=role,
        )
        self.users[user.id] = user
        return user

    def add_class(self, teacher, students=()):
        school_class = SchoolClass(
            id=PydanticObjectId(),
            class_name="Physics",
            teacher_id=str(teacher.id),
            student_ids=[str(s.id) for s in students],
        )
        self.classes[school_class.id] = school_class
        return school_class


def identity_of(user):
    return Identity(user_id=str(user.id), role=user.role)


@pytest.fixture
def documents(monkeypatch):
    return Documents(monkeypatch)


@pytest.fixture
def teacher_user(documents):
    return documents.add_user("Rao", UserRole.TEACHER)


@pytest.fixture
def student_user(documents):
    return documents.add_user("Asha", UserRole.STUDENT)
