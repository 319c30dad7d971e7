"""Schemas for principal management and assignments."""

from datetime import datetime
from typing import Optional

from models.principals import PrincipalKind
from pydantic import AwareDatetime, Field
from schemas.auth import CamelModel, Principal


class PrincipalCreate(CamelModel):
    """Request body for creating a principal of any kind."""

    user_type: PrincipalKind
    username: str = Field(min_length=1)
    password: str = Field(min_length=8)
    email: Optional[str] = None
    name: str = ""
    surname: str = ""
    class_id: Optional[int] = None
    parent_id: Optional[str] = None


class PrincipalList(CamelModel):
    users: list[Principal]


class AssignmentCreate(CamelModel):
    title: str = Field(min_length=1)
    start_date: AwareDatetime
    due_date: AwareDatetime
    lesson_id: int


class AssignmentOut(CamelModel):
    id: int
    title: str
    start_date: datetime
    due_date: datetime
    lesson_id: int


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class AssignmentPage(CamelModel):
    assignments: list[AssignmentOut]
    pagination: Pagination
