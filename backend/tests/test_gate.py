"""
Request gate: pure decisions and the middleware wired into the app.
"""
from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import login
from core.gate import (
    SESSION_COOKIE,
    Outcome,
    evaluate,
    is_passthrough,
    is_public,
)
from models.principals import PrincipalKind


def cleared(response, cookie=SESSION_COOKIE):
    return any(
        header.startswith(f"{cookie}=") and "Max-Age=0" in header
        for header in response.headers.get_list("set-cookie")
    )


@pytest.mark.parametrize(
    "path", ["/", "/sign-in", "/sign-up/step-2", "/forgot-password", "/admin-login"]
)
def test_public_paths(path):
    assert is_public(path)


@pytest.mark.parametrize("path", ["/teacher", "/admin", "/signin", "/api/auth/me"])
def test_non_public_paths(path):
    assert not is_public(path)


def test_passthrough_paths():
    assert is_passthrough("/static/app.js")
    assert is_passthrough("/favicon.ico")
    assert not is_passthrough("/admin/user-management.json")
    assert not is_passthrough("/teacher/report.pdf")
    assert is_passthrough("/docs")
    assert is_passthrough("/api/assignments")
    assert not is_passthrough("/api/auth/me")
    assert not is_passthrough("/teacher/classes")


def test_evaluate_without_token(codec):
    decision = evaluate("/teacher", None, codec)
    assert decision.outcome is Outcome.SIGN_IN
    assert decision.location == "/sign-in"
    assert decision.clear_cookie is False


def test_evaluate_invalid_token_clears_cookie(codec):
    decision = evaluate("/teacher", "garbage", codec)
    assert decision.outcome is Outcome.SIGN_IN
    assert decision.clear_cookie is True


def test_evaluate_wrong_role_goes_home(codec):
    token, _ = codec.issue("t-1", PrincipalKind.TEACHER, "teacher1", timedelta(hours=1))
    decision = evaluate("/admin/user-management", token, codec)
    assert decision.outcome is Outcome.HOME
    assert decision.location == "/teacher"


def test_evaluate_forwards_with_claims(codec):
    token, _ = codec.issue("a-1", PrincipalKind.ADMIN, "admin1", timedelta(hours=1))
    decision = evaluate("/teacher/classes", token, codec)
    assert decision.outcome is Outcome.FORWARD
    assert decision.claims.user_id == "a-1"


def test_evaluate_public_ignores_bad_token(codec):
    assert evaluate("/sign-in", "garbage", codec).outcome is Outcome.FORWARD


async def test_no_cookie_redirects_to_sign_in(client):
    response = await client.get("/teacher")
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"


async def test_tampered_cookie_redirects_and_clears(client, codec):
    token, _ = codec.issue("t-1", PrincipalKind.TEACHER, "teacher1", timedelta(hours=1))
    client.cookies.set(SESSION_COOKIE, token[:-6] + "abcdef")
    response = await client.get("/teacher")
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"
    assert cleared(response)


async def test_expired_cookie_redirects(client, codec):
    token, _ = codec.issue(
        "t-1", PrincipalKind.TEACHER, "teacher1", timedelta(seconds=-1)
    )
    client.cookies.set(SESSION_COOKIE, token)
    response = await client.get("/teacher")
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"


async def test_teacher_is_sent_home_from_admin_area(client, school):
    await login(client, "teacher1", "teacher1123")
    response = await client.get("/admin/user-management")
    assert response.status_code == 307
    assert response.headers["location"] == "/teacher"


async def test_admin_reaches_admin_area(client, school):
    await login(client, "admin1", "admin123")
    response = await client.get("/admin/user-management")
    assert response.status_code == 200
    body = response.json()
    assert body["page"] == "admin/user-management"
    assert body["userType"] == "ADMIN"
    assert body["userId"] == school["admin"].id


async def test_admin_reaches_other_dashboards(client, school):
    await login(client, "admin1", "admin123")
    for path in ("/teacher", "/student", "/parent", "/list/students"):
        response = await client.get(path)
        assert response.status_code == 200, path


async def test_student_cannot_open_lists(client, school):
    await login(client, "student1", "student1123")
    response = await client.get("/list/teachers")
    assert response.status_code == 307
    assert response.headers["location"] == "/student"


async def test_unlisted_path_needs_only_authentication(client, school):
    await login(client, "parent1", "parent1123")
    response = await client.get("/profile")
    assert response.status_code == 200
    assert response.json()["userType"] == "PARENT"


async def test_public_pages_need_no_cookie(client):
    for path in ("/", "/sign-in", "/admin-login"):
        response = await client.get(path)
        assert response.status_code == 200, path


async def test_api_routes_answer_401_not_redirect(client):
    response = await client.get("/api/assignments")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


async def test_me_is_gated(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"


async def test_unknown_page_is_404(client, school):
    await login(client, "admin1", "admin123")
    response = await client.get("/nowhere")
    assert response.status_code == 404
    assert response.json() == {"error": "Page not found"}


async def test_dotted_dashboard_path_is_still_gated(client, school):
    response = await client.get("/admin/user-management.json")
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"

    await login(client, "teacher1", "teacher1123")
    response = await client.get("/admin/user-management.json")
    assert response.status_code == 307
    assert response.headers["location"] == "/teacher"
