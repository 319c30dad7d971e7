"""Application settings loaded from environment for the school portal backend.

This module defines the :class:`Settings` model (based on Pydantic's
``BaseSettings``) and instantiates ``settings``. Only the wiring layer
(``main`` and ``core.dependencies``) reads ``settings``; components receive
the values they need through their constructors.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    """Environment-backed application settings.

    Attributes:
        DATABASE_URL: Async SQLAlchemy URL (``postgresql+asyncpg://...``).
        DB_ECHO: Echo SQL statements to the log.

        JWT_SECRET: Token signing secret.
        JWT_ALGORITHM: Token signing algorithm.
        SESSION_TTL_HOURS: Lifetime of a normal login token and session.
        ADMIN_SESSION_TTL_DAYS: Lifetime of the legacy admin session cookie.

        RESET_TOKEN_TTL_MINUTES: Lifetime of a password reset token.
        RESET_DEMO_CODE: Fixed verification code accepted by the reset flow.

        ENVIRONMENT: ``production`` enables Secure cookies and hides
            internal error messages.
        CORS_ORIGINS: Origins allowed to send credentialed requests.
    """

    DATABASE_URL: str

    DB_ECHO: bool = False

    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_HOURS: int = 24
    ADMIN_SESSION_TTL_DAYS: int = 7

    RESET_TOKEN_TTL_MINUTES: int = 15
    RESET_DEMO_CODE: str = "123456"

    ENVIRONMENT: str = "development"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"


settings = Settings()
