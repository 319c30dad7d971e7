"""Loguru configuration for the school portal backend.

Standard library ``logging`` records (uvicorn, SQLAlchemy) are intercepted
and routed through Loguru so the whole process writes one log stream.

Environment:
    LOG_LEVEL: Minimum level, ``INFO`` by default.
    LOG_JSON: ``1``/``true`` writes one JSON object per line instead of the
        human-readable format.

Signed tokens never reach the sink: anything shaped like a JWT in a log
message is masked.
"""

import logging
import os
import re
import sys

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes")

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {name} | {message}"

JWT_PATTERN = re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]+")


def _mask_tokens(record) -> None:
    record["message"] = JWT_PATTERN.sub("[token]", record["message"])


logger.remove()
logger.configure(patcher=_mask_tokens)
logger.add(
    sys.stdout,
    level=LOG_LEVEL,
    format=LOG_FORMAT,
    serialize=LOG_JSON,
    backtrace=True,
    diagnose=False,
)


class InterceptHandler(logging.Handler):
    """Route stdlib logging records into Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


logging.basicConfig(handlers=[InterceptHandler()], level=LOG_LEVEL, force=True)

for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine"):
    logging.getLogger(name).handlers = [InterceptHandler()]
    logging.getLogger(name).propagate = False

# Usage: from core.logging import logger
