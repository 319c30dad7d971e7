"""Lookup and management of principals across the four user tables.

Admins, teachers, students and parents are stored in separate tables with
the same identity columns. :class:`PrincipalDirectory` hides that split so
callers deal with one identity shape, a :class:`schemas.auth.Principal`
tagged with its kind.
"""

from typing import Iterable

from core.logging import logger
from models.principals import PRINCIPAL_MODELS, PrincipalKind
from pwdlib import PasswordHash
from schemas.auth import Principal
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

password_hash = PasswordHash.recommended()

# Password reset lookups search these kinds, in this order.
RESETTABLE_KINDS = (PrincipalKind.TEACHER, PrincipalKind.STUDENT, PrincipalKind.PARENT)


def verify_password(plain_password, hashed_password):
    """Verify a plain password against a stored hash.

    Args:
        plain_password: The clear-text password provided by the user.
        hashed_password: The stored password hash to verify against.

    Returns:
        bool: True if the password matches, False otherwise.
    """
    return password_hash.verify(plain_password, hashed_password)


def get_password_hash(password):
    """Hash a plain password using the recommended algorithm."""
    return password_hash.hash(password)


def to_principal(row) -> Principal:
    return Principal(
        id=row.id,
        username=row.username,
        user_type=row.kind,
        email=row.email,
        name=row.name or "",
        surname=row.surname or "",
    )


class PrincipalDirectory:
    """Read and write principals of every kind.

    Args:
        session_factory: Sessionmaker producing ``AsyncSession`` objects.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_username(self, kind: PrincipalKind, username: str):
        """Return the ORM row of ``kind`` with ``username`` or None."""

        model = PRINCIPAL_MODELS[PrincipalKind(kind)]
        async with self.session_factory() as db:
            result = await db.execute(select(model).filter(model.username == username))
            return result.scalars().first()

    async def find_by_id(self, kind: PrincipalKind, principal_id: str):
        model = PRINCIPAL_MODELS[PrincipalKind(kind)]
        async with self.session_factory() as db:
            return await db.get(model, principal_id)

    async def find_by_email(
        self, email: str, kinds: Iterable[PrincipalKind] = RESETTABLE_KINDS
    ):
        """Return the first row whose email matches, probing ``kinds`` in order."""

        for kind in kinds:
            model = PRINCIPAL_MODELS[kind]
            async with self.session_factory() as db:
                result = await db.execute(select(model).filter(model.email == email))
                row = result.scalars().first()
            if row is not None:
                return row
        return None

    async def get(self, kind: PrincipalKind, principal_id: str) -> Principal | None:
        row = await self.find_by_id(kind, principal_id)
        return to_principal(row) if row is not None else None

    async def create(
        self,
        kind: PrincipalKind,
        username: str,
        password: str,
        **profile,
    ) -> Principal:
        """Create a principal of ``kind``.

        Raises:
            sqlalchemy.exc.IntegrityError: If the username or email is taken
                within the kind's table.
        """
        model = PRINCIPAL_MODELS[PrincipalKind(kind)]
        row = model(
            username=username,
            hashed_password=get_password_hash(password),
            **profile,
        )
        async with self.session_factory() as db:
            db.add(row)
            await db.commit()
        logger.info("Created {} principal username={} id={}", kind.value, username, row.id)
        return to_principal(row)

    async def set_password(self, kind: PrincipalKind, principal_id: str, password: str):
        model = PRINCIPAL_MODELS[PrincipalKind(kind)]
        async with self.session_factory() as db:
            row = await db.get(model, principal_id)
            if row is None:
                return False
            row.hashed_password = get_password_hash(password)
            await db.commit()
        logger.info("Password updated for {} id={}", kind.value, principal_id)
        return True

    async def search(
        self, kind: PrincipalKind, search: str = "", limit: int = 50
    ) -> list[Principal]:
        """List principals of ``kind`` whose username or name contains ``search``."""

        model = PRINCIPAL_MODELS[PrincipalKind(kind)]
        stmt = select(model).order_by(model.username).limit(limit)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.filter(
                or_(
                    model.username.ilike(pattern),
                    model.name.ilike(pattern),
                    model.surname.ilike(pattern),
                )
            )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [to_principal(row) for row in result.scalars().all()]
