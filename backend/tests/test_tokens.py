"""
Token codec: round trip, expiry, tampering and token-type separation.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.tokens import TokenCodec
from models.principals import PrincipalKind

SECRET = "unit-test-secret-which-is-long-enough"


def tamper(token: str) -> str:
    i = token.index(".") + 5
    replacement = "A" if token[i] != "A" else "B"
    return token[:i] + replacement + token[i + 1 :]


def test_issue_verify_round_trip():
    codec = TokenCodec(SECRET)
    token, expires_at = codec.issue(
        "u-1", PrincipalKind.TEACHER, "teacher1", timedelta(hours=24), session_id="s-1"
    )
    claims = codec.verify(token)
    assert claims is not None
    assert claims.user_id == "u-1"
    assert claims.user_type is PrincipalKind.TEACHER
    assert claims.username == "teacher1"
    assert claims.session_id == "s-1"
    assert abs((claims.expires_at - expires_at).total_seconds()) < 1


def test_expired_token_is_invalid():
    now = datetime.now(timezone.utc)
    issuer = TokenCodec(SECRET, clock=lambda: now)
    token, _ = issuer.issue("u-1", PrincipalKind.ADMIN, "admin1", timedelta(hours=1))

    just_before = TokenCodec(SECRET, clock=lambda: now + timedelta(minutes=59))
    assert just_before.verify(token) is not None

    after = TokenCodec(SECRET, clock=lambda: now + timedelta(hours=1, seconds=1))
    assert after.verify(token) is None


def test_negative_ttl_is_invalid_immediately():
    codec = TokenCodec(SECRET)
    token, _ = codec.issue("u-1", PrincipalKind.ADMIN, "admin1", timedelta(seconds=-5))
    assert codec.verify(token) is None


def test_tampered_token_is_invalid():
    codec = TokenCodec(SECRET)
    token, _ = codec.issue("u-1", PrincipalKind.STUDENT, "student1", timedelta(hours=1))
    assert codec.verify(tamper(token)) is None


def test_other_secret_is_invalid():
    token, _ = TokenCodec("another-secret-entirely-0123456789").issue(
        "u-1", PrincipalKind.ADMIN, "admin1", timedelta(hours=1)
    )
    assert TokenCodec(SECRET).verify(token) is None


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
def test_garbage_never_raises(token):
    assert TokenCodec(SECRET).verify(token) is None


def test_signed_but_malformed_payload_is_invalid():
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode(
        {"userId": "u-1", "userType": "JANITOR", "username": "x",
         "token_type": "session", "exp": exp},
        SECRET,
        algorithm="HS256",
    )
    assert TokenCodec(SECRET).verify(token) is None

    token = jwt.encode({"token_type": "session", "exp": exp}, SECRET, algorithm="HS256")
    assert TokenCodec(SECRET).verify(token) is None


def test_reset_and_session_tokens_are_not_interchangeable():
    codec = TokenCodec(SECRET)
    reset = codec.issue_reset("teacher1@school.test", timedelta(minutes=15))
    session, _ = codec.issue("u-1", PrincipalKind.TEACHER, "teacher1", timedelta(hours=1))

    assert codec.verify_reset(reset) == "teacher1@school.test"
    assert codec.verify(reset) is None
    assert codec.verify_reset(session) is None


def test_secret_is_required():
    with pytest.raises(ValueError):
        TokenCodec("")
