"""Assignments with role-scoped row access.

Who sees which assignment:

- ADMIN: all of them.
- TEACHER: assignments of lessons they teach.
- STUDENT: assignments of lessons of their own class.
- PARENT: assignments of lessons of their children's classes.

The same rule decides ownership for single-row reads and for writes, so
list narrowing and per-row checks cannot drift apart.
"""

from datetime import datetime

from core.errors import AuthorizationError, NotFoundError, ValidationError
from core.logging import logger
from core.policy import Action, can_perform
from models.principals import PrincipalKind, Student
from models.school import Assignment, Lesson
from schemas.auth import TokenClaims
from services import audit
from services.audit import AuditLogWriter
from sqlalchemy import false, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

RESOURCE = "assignments"


async def visible_class_ids(db: AsyncSession, claims: TokenClaims) -> list[int]:
    """Classes whose lessons a student or parent may see."""

    if claims.user_type is PrincipalKind.STUDENT:
        stmt = select(Student.class_id).filter(Student.id == claims.user_id)
    elif claims.user_type is PrincipalKind.PARENT:
        stmt = select(Student.class_id).filter(Student.parent_id == claims.user_id)
    else:
        return []
    result = await db.execute(stmt)
    return [class_id for class_id in result.scalars().all() if class_id is not None]


async def lesson_scope(db: AsyncSession, claims: TokenClaims):
    """Return a filter on ``Lesson`` limiting rows to the principal's, or None for all."""

    if claims.user_type is PrincipalKind.ADMIN:
        return None
    if claims.user_type is PrincipalKind.TEACHER:
        return Lesson.teacher_id == claims.user_id
    class_ids = await visible_class_ids(db, claims)
    if not class_ids:
        return false()
    return Lesson.class_id.in_(class_ids)


async def owns_lesson(db: AsyncSession, claims: TokenClaims, lesson: Lesson) -> bool:
    if claims.user_type is PrincipalKind.ADMIN:
        return True
    if claims.user_type is PrincipalKind.TEACHER:
        return lesson.teacher_id == claims.user_id
    return lesson.class_id in await visible_class_ids(db, claims)


class AssignmentService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit_log: AuditLogWriter,
    ):
        self.session_factory = session_factory
        self.audit_log = audit_log

    async def list_visible(
        self,
        claims: TokenClaims,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        lesson_id: int | None = None,
    ) -> tuple[list[Assignment], int]:
        """Return one page of the assignments ``claims`` may see, and the total."""

        if not can_perform(claims.user_type, RESOURCE, Action.READ):
            raise AuthorizationError()

        async with self.session_factory() as db:
            conditions = []
            scope = await lesson_scope(db, claims)
            if scope is not None:
                conditions.append(scope)
            if search:
                conditions.append(Assignment.title.ilike(f"%{search}%"))
            if lesson_id is not None:
                conditions.append(Assignment.lesson_id == lesson_id)

            stmt = select(Assignment).join(Assignment.lesson).filter(*conditions)
            total = await db.scalar(
                select(func.count(Assignment.id))
                .join(Assignment.lesson)
                .filter(*conditions)
            )
            result = await db.execute(
                stmt.order_by(Assignment.due_date.asc(), Assignment.id.asc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return list(result.scalars().unique().all()), total or 0

    async def get(self, claims: TokenClaims, assignment_id: int) -> Assignment:
        async with self.session_factory() as db:
            assignment = await db.get(Assignment, assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment not found")
            owned = await owns_lesson(db, claims, assignment.lesson)
        if not can_perform(claims.user_type, RESOURCE, Action.READ, owned):
            # NOTE: rows outside the principal's scope look like missing rows.
            raise NotFoundError("Assignment not found")
        return assignment

    async def create(
        self,
        claims: TokenClaims,
        title: str,
        start_date: datetime,
        due_date: datetime,
        lesson_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Assignment:
        """Create an assignment on a lesson the principal owns.

        Raises:
            AuthorizationError: Role may not create, or the lesson is not theirs.
            ValidationError: ``due_date`` is not after ``start_date``.
            NotFoundError: Unknown lesson.
        """
        if not can_perform(claims.user_type, RESOURCE, Action.CREATE):
            raise AuthorizationError()
        if due_date <= start_date:
            raise ValidationError("Due date must be after start date")

        async with self.session_factory() as db:
            lesson = await db.get(Lesson, lesson_id)
            if lesson is None:
                raise NotFoundError("Lesson not found")
            owned = await owns_lesson(db, claims, lesson)
            if not can_perform(claims.user_type, RESOURCE, Action.CREATE, owned):
                raise AuthorizationError()

            assignment = Assignment(
                title=title,
                start_date=start_date,
                due_date=due_date,
                lesson_id=lesson.id,
            )
            db.add(assignment)
            await db.commit()
            await db.refresh(assignment, ["lesson"])

        await self.audit_log.record(
            user_id=claims.user_id,
            user_type=claims.user_type,
            action=audit.CREATE,
            entity="Assignment",
            entity_id=assignment.id,
            changes={"title": title, "lessonId": lesson_id},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("Assignment {} created by {}", assignment.id, claims.username)
        return assignment

    async def delete(
        self,
        claims: TokenClaims,
        assignment_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        if not can_perform(claims.user_type, RESOURCE, Action.DELETE):
            raise AuthorizationError()

        async with self.session_factory() as db:
            assignment = await db.get(Assignment, assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment not found")
            owned = await owns_lesson(db, claims, assignment.lesson)
            if not can_perform(claims.user_type, RESOURCE, Action.DELETE, owned):
                raise AuthorizationError()
            await db.delete(assignment)
            await db.commit()

        await self.audit_log.record(
            user_id=claims.user_id,
            user_type=claims.user_type,
            action=audit.DELETE,
            entity="Assignment",
            entity_id=assignment_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("Assignment {} deleted by {}", assignment_id, claims.username)
