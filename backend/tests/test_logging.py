"""
Log output never carries signed tokens.
"""
from __future__ import annotations

import logging
from datetime import timedelta

from core.logging import logger
from core.tokens import TokenCodec
from models.principals import PrincipalKind


def capture():
    messages = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]))
    return messages, sink_id


def test_tokens_are_masked():
    token, _ = TokenCodec("logging-test-secret").issue(
        "u-1", PrincipalKind.ADMIN, "admin1", timedelta(minutes=5)
    )
    messages, sink_id = capture()
    try:
        logger.info("Issued {} for admin1", token)
        logger.info(f"Bearer {token}")
    finally:
        logger.remove(sink_id)

    assert messages[0] == "Issued [token] for admin1"
    assert messages[1] == "Bearer [token]"


def test_stdlib_records_are_routed_through_loguru():
    messages, sink_id = capture()
    try:
        logging.getLogger("school_portal.test").warning("plain %s record", "stdlib")
    finally:
        logger.remove(sink_id)

    assert "plain stdlib record" in messages
