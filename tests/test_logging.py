"""Logging configuration tests."""

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from gateway.logging import SERVICE_NAME, add_service, configure_logging


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo configure_logging after a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    logging.getLogger("websockets").setLevel(logging.NOTSET)
    structlog.reset_defaults()


def test_add_service_keeps_explicit_value() -> None:
    """Events are tagged with the service unless they already name one."""
    assert add_service(None, "info", {"event": "x"})["service"] == SERVICE_NAME
    assert add_service(None, "info", {"service": "other"})["service"] == "other"


@pytest.mark.usefixtures("restore_logging")
def test_server_records_render_as_json() -> None:
    """uvicorn's protocol logger is rendered through the gateway's JSON format."""
    configure_logging()

    uvicorn_error = logging.getLogger("uvicorn.error")
    assert uvicorn_error.handlers == []
    assert uvicorn_error.propagate is True
    assert logging.getLogger("websockets").level == logging.WARNING

    record = uvicorn_error.makeRecord(
        "uvicorn.error", logging.WARNING, __file__, 1, 'Invalid "upgrade" header', (), None
    )
    line = json.loads(logging.getLogger().handlers[0].format(record))

    assert line["service"] == SERVICE_NAME
    assert line["logger"] == "uvicorn.error"
    assert line["level"] == "warning"
    assert line["event"] == 'Invalid "upgrade" header'
    assert "timestamp" in line
