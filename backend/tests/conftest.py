"""
Shared fixtures: a throwaway SQLite database, seeded principals and an HTTP
client bound to the app.
"""
from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Settings are read at import time, so the environment goes first.
_test_db = Path(tempfile.gettempdir()) / f"school_portal_test_{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_db.as_posix()}"
os.environ["JWT_SECRET"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["ENVIRONMENT"] = "development"

import httpx
import pytest

import models.auth  # noqa: F401,E402
import models.principals  # noqa: E402
import models.school  # noqa: E402
from core import dependencies  # noqa: E402
from db.session import AsyncSessionLocal, Base, engine  # noqa: E402
from main import app  # noqa: E402
from models.principals import PrincipalKind  # noqa: E402
from models.school import Assignment, Lesson, SchoolClass  # noqa: E402
from services.principals import get_password_hash  # noqa: E402


@pytest.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield AsyncSessionLocal
    # NOTE: pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


def _principal(model, username, password, **extra):
    return model(
        username=username,
        hashed_password=get_password_hash(password),
        email=f"{username}@school.test",
        name=username.capitalize(),
        surname="Test",
        **extra,
    )


@pytest.fixture
async def school(database):
    """Seed one of each principal kind plus two classes, lessons and assignments.

    class A: lesson "Maths A" by teacher1, student1 (child of parent1)
    class B: lesson "Physics B" by teacher2, student2 (no parent)
    """
    now = datetime.now(timezone.utc)
    async with database() as db:
        class_a = SchoolClass(name="1A")
        class_b = SchoolClass(name="1B")
        db.add_all([class_a, class_b])
        await db.flush()

        admin = _principal(models.principals.Admin, "admin1", "admin123")
        teacher1 = _principal(models.principals.Teacher, "teacher1", "teacher1123")
        teacher2 = _principal(models.principals.Teacher, "teacher2", "teacher2123")
        parent1 = _principal(models.principals.Parent, "parent1", "parent1123")
        db.add_all([admin, teacher1, teacher2, parent1])
        await db.flush()

        student1 = _principal(
            models.principals.Student,
            "student1",
            "student1123",
            class_id=class_a.id,
            parent_id=parent1.id,
        )
        student2 = _principal(
            models.principals.Student, "student2", "student2123", class_id=class_b.id
        )
        db.add_all([student1, student2])

        maths = Lesson(name="Maths A", class_id=class_a.id, teacher_id=teacher1.id)
        physics = Lesson(name="Physics B", class_id=class_b.id, teacher_id=teacher2.id)
        db.add_all([maths, physics])
        await db.flush()

        homework_a = Assignment(
            title="Fractions",
            start_date=now,
            due_date=now + timedelta(days=7),
            lesson_id=maths.id,
        )
        homework_b = Assignment(
            title="Newton's laws",
            start_date=now,
            due_date=now + timedelta(days=3),
            lesson_id=physics.id,
        )
        db.add_all([homework_a, homework_b])
        await db.commit()

        return {
            "admin": admin,
            "teacher1": teacher1,
            "teacher2": teacher2,
            "parent1": parent1,
            "student1": student1,
            "student2": student2,
            "maths": maths,
            "physics": physics,
            "homework_a": homework_a,
            "homework_b": homework_b,
        }


@pytest.fixture
async def client(database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def codec():
    return dependencies.get_token_codec()


@pytest.fixture
def authenticator():
    return dependencies.get_authenticator()


@pytest.fixture
def sessions():
    return dependencies.get_session_store()


@pytest.fixture
def audit_log():
    return dependencies.get_audit_writer()


async def login(client, username, password, user_type: PrincipalKind | None = None):
    """Log in through the API; the client keeps the session cookie."""
    body = {"username": username, "password": password}
    if user_type is not None:
        body["userType"] = user_type.value
    response = await client.post("/api/auth/login", json=body)
    assert response.status_code == 200, response.text
    return response.json()
