"""
Service layer: authenticator, session store and audit writer used directly.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.errors import AuthenticationError
from core.tokens import TokenCodec
from db.session import AsyncSessionLocal
from models.principals import PrincipalKind
from services import audit
from services.audit import AuditLogWriter
from services.authenticator import Authenticator
from services.principals import PrincipalDirectory


async def test_login_result_round_trips_through_codec(authenticator, codec, school):
    result = await authenticator.login("teacher2", "teacher2123", ip_address="10.0.0.7")
    claims = codec.verify(result.token)
    assert claims.user_id == result.principal.id == school["teacher2"].id
    assert claims.user_type is PrincipalKind.TEACHER
    assert claims.session_id == result.session_id


async def test_login_failures_raise_one_error(authenticator, school):
    with pytest.raises(AuthenticationError) as wrong_password:
        await authenticator.login("teacher2", "not-it")
    with pytest.raises(AuthenticationError) as unknown_user:
        await authenticator.login("nobody", "not-it")
    assert wrong_password.value.message == unknown_user.value.message
    assert wrong_password.value.status_code == 401


async def test_login_with_custom_ttl(authenticator, sessions, school):
    result = await authenticator.login(
        "admin1", "admin123", user_type=PrincipalKind.ADMIN, ttl=timedelta(days=7)
    )
    assert result.expires_at - datetime.now(timezone.utc) > timedelta(days=6)
    stored = await sessions.get(result.session_id)
    assert stored.ip_address is None
    assert stored.user_type == "ADMIN"


async def test_list_active_skips_expired_and_orders_by_activity(sessions, school):
    user_id = school["student2"].id
    older = await sessions.create(user_id, PrincipalKind.STUDENT, "1.1.1.1", "a", timedelta(hours=1))
    newer = await sessions.create(user_id, PrincipalKind.STUDENT, "2.2.2.2", "b", timedelta(hours=1))
    await sessions.create(user_id, PrincipalKind.STUDENT, "3.3.3.3", "c", timedelta(seconds=-1))

    await sessions.touch(older.id)
    active = await sessions.list_active(user_id)
    assert [s.id for s in active] == [older.id, newer.id]


async def test_terminate_is_scoped_to_owner(sessions, school):
    mine = await sessions.create(
        school["teacher1"].id, PrincipalKind.TEACHER, None, None, timedelta(hours=1)
    )
    theirs = await sessions.create(
        school["teacher2"].id, PrincipalKind.TEACHER, None, None, timedelta(hours=1)
    )

    assert await sessions.terminate(school["teacher1"].id, [theirs.id]) == 0
    assert await sessions.terminate(school["teacher1"].id, []) == 0
    assert await sessions.terminate(school["teacher1"].id, [mine.id], keep=mine.id) == 0
    assert await sessions.terminate(school["teacher1"].id, [mine.id]) == 1
    assert await sessions.get(theirs.id) is not None


async def test_terminate_all(sessions, school):
    user_id = school["parent1"].id
    for _ in range(3):
        await sessions.create(user_id, PrincipalKind.PARENT, None, None, timedelta(hours=1))
    assert await sessions.terminate_all(user_id) == 3
    assert await sessions.list_active(user_id) == []


async def test_logout_deletes_only_current_session(authenticator, sessions, audit_log, codec, school):
    first = await authenticator.login("parent1", "parent1123")
    second = await authenticator.login("parent1", "parent1123")

    await authenticator.logout(codec.verify(second.token))

    assert await sessions.get(second.session_id) is None
    assert await sessions.get(first.session_id) is not None
    entries = await audit_log.list_for(school["parent1"].id, audit.LOGOUT)
    assert entries[0].entity_id == second.session_id


async def test_audit_record_and_filter(audit_log, database):
    assert await audit_log.record("u-1", PrincipalKind.ADMIN, audit.UPDATE, "Lesson", entity_id=5)
    assert await audit_log.record("u-1", "ADMIN", audit.DELETE, "Lesson", changes={"id": 5})

    entries = await audit_log.list_for("u-1")
    assert [e.action for e in entries] == [audit.UPDATE, audit.DELETE]
    assert entries[0].entity_id == "5"
    assert entries[0].user_type == "ADMIN"
    assert entries[1].changes == {"id": 5}
    assert [e.action for e in await audit_log.list_for("u-1", audit.DELETE)] == [audit.DELETE]


async def test_audit_failure_is_swallowed(tmp_path):
    # No tables were created in this database, so every insert fails.
    engine = create_async_engine(f"sqlite+aiosqlite:///{(tmp_path / 'empty.db').as_posix()}")
    writer = AuditLogWriter(async_sessionmaker(engine, expire_on_commit=False))
    try:
        assert await writer.record("u-1", "ADMIN", audit.CREATE, "User") is False
    finally:
        await engine.dispose()


async def test_session_expiry_matches_token(sessions, audit_log, school):
    issued_at = datetime.now(timezone.utc) + timedelta(hours=3)
    authenticator = Authenticator(
        principals=PrincipalDirectory(AsyncSessionLocal),
        codec=TokenCodec("session-expiry-secret", clock=lambda: issued_at),
        sessions=sessions,
        audit_log=audit_log,
    )
    result = await authenticator.login("teacher1", "teacher1123")

    stored = await sessions.get(result.session_id)
    assert result.expires_at == issued_at + timedelta(hours=24)
    assert stored.expires_at.replace(tzinfo=None) == result.expires_at.replace(tzinfo=None)
