"""Principal models: the four disjoint user kinds of the school portal.

Admins, teachers, students and parents live in their own tables with the
same identity columns. ``PRINCIPAL_MODELS`` maps each :class:`PrincipalKind`
to its table so lookups go through one code path instead of four.
"""

import enum
import uuid

from db.session import Base
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func


class PrincipalKind(str, enum.Enum):
    """Kind of an authenticated identity. Doubles as the user's role."""

    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"


def _new_id() -> str:
    return str(uuid.uuid4())


class PrincipalMixin:
    """Identity and credential columns shared by every principal table.

    Attributes:
        id: Primary key (uuid4 string).
        username: Login name, unique within the table.
        hashed_password: Password hash.
        email: Optional contact address, unique within the table.
        name: Given name.
        surname: Family name.
        created_at: Account creation timestamp.
    """

    id = Column(String, primary_key=True, default=_new_id)
    username = Column(String, nullable=False, unique=True, index=True)
    hashed_password = Column(String, nullable=False)
    email = Column(String, nullable=True, unique=True)
    name = Column(String, nullable=False, default="")
    surname = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Admin(PrincipalMixin, Base):
    __tablename__ = "admins"

    kind = PrincipalKind.ADMIN


class Teacher(PrincipalMixin, Base):
    __tablename__ = "teachers"

    kind = PrincipalKind.TEACHER


class Parent(PrincipalMixin, Base):
    __tablename__ = "parents"

    kind = PrincipalKind.PARENT


class Student(PrincipalMixin, Base):
    """Student account; belongs to one class and optionally one parent."""

    __tablename__ = "students"

    kind = PrincipalKind.STUDENT

    class_id = Column(Integer, ForeignKey("classes.id"), nullable=True)
    parent_id = Column(String, ForeignKey("parents.id"), nullable=True)


# Lookup order when a login does not name its user type.
PRINCIPAL_MODELS = {
    PrincipalKind.ADMIN: Admin,
    PrincipalKind.TEACHER: Teacher,
    PrincipalKind.STUDENT: Student,
    PrincipalKind.PARENT: Parent,
}
