"""
Error rendering: JSON bodies and production sanitization.
"""
from __future__ import annotations

import httpx
from fastapi import FastAPI

from core.errors import (
    GENERIC_ERROR_MESSAGE,
    ConflictError,
    InternalError,
    NotFoundError,
    register_error_handlers,
    sanitize_error,
)


def build_app(production):
    app = FastAPI()
    register_error_handlers(app, production=production)

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Lesson not found")

    @app.get("/broken")
    async def broken():
        raise InternalError("connection refused by db-1:5432")

    @app.get("/conflict")
    async def conflict():
        raise ConflictError()

    return app


async def request(app, path):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        return await c.get(path)


def test_sanitize_error():
    error = RuntimeError("password=hunter2")
    assert sanitize_error(error, production=True) == GENERIC_ERROR_MESSAGE
    assert sanitize_error(error, production=False) == "password=hunter2"
    assert sanitize_error(RuntimeError(), production=False) == GENERIC_ERROR_MESSAGE


async def test_app_errors_render_as_json():
    app = build_app(production=True)

    response = await request(app, "/missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Lesson not found"}

    response = await request(app, "/conflict")
    assert response.status_code == 409
    assert response.json() == {"error": ConflictError.default_message}

    response = await request(app, "/no-such-route")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


async def test_internal_errors_hidden_in_production():
    response = await request(build_app(production=True), "/broken")
    assert response.status_code == 500
    assert response.json() == {"error": GENERIC_ERROR_MESSAGE}

    response = await request(build_app(production=False), "/broken")
    assert response.json() == {"error": "connection refused by db-1:5432"}
