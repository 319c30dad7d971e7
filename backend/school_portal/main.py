"""FastAPI application entrypoint for the school portal backend.

Sets up the application, middleware, error handlers and routes and provides
a lifespan context manager that initializes the database on startup and
disposes the engine on shutdown.
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from api.routes.admin import router as admin_router
from api.routes.assignments import router as assignments_router
from api.routes.auth import router as auth_router
from api.routes.pages import router as pages_router
from api.routes.users import router as users_router
from config.config import settings
from core.dependencies import get_token_codec
from core.errors import register_error_handlers
from core.gate import RequestGateMiddleware
from core.logging import logger
from db.session import engine, initialize_database
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context to run startup and shutdown routines.

    On startup this creates the metadata tables, retrying a few times if the
    DB isn't ready yet.

    Yields:
        None: Control is returned to FastAPI while the app is running.
    """

    logger.info("Starting up (environment={})", settings.ENVIRONMENT)

    max_retries = 5
    for attempt in range(max_retries):
        try:
            await initialize_database()
            break
        except Exception as e:
            # NOTE: transient DB connectivity issues are retried to improve
            # startup robustness when services come up concurrently.
            if attempt < max_retries - 1:
                logger.warning(
                    "Database connection attempt {} failed: {}. Retrying..",
                    attempt + 1,
                    e,
                )
                await asyncio.sleep(2)
            else:
                logger.exception(
                    "Failed to create database tables after {} attempts", max_retries
                )
                raise

    yield

    logger.info("Shutting down")
    await engine.dispose()


app = FastAPI(lifespan=lifespan, title="School Portal")

register_error_handlers(app, production=settings.is_production)

app.add_middleware(RequestGateMiddleware, codec=get_token_codec())
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(users_router)
app.include_router(assignments_router)
# NOTE: last, its catch-all section route must not shadow the API routes
app.include_router(pages_router)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
