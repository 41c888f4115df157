import json
import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.logging import JsonLogFormatter, configure_logging
from app.middlewares import principal_ctx_var, request_id_ctx_var


@pytest.fixture()
def restore_root_logger():
    handlers, level = list(logging.root.handlers), logging.root.level
    access = logging.getLogger("uvicorn.access")
    access_disabled = access.disabled
    try:
        yield
    finally:
        logging.root.handlers = handlers
        logging.root.setLevel(level)
        access.disabled = access_disabled


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_request_context_and_extra_data():
    request_token = request_id_ctx_var.set("req-1")
    principal_token = principal_ctx_var.set(7)
    try:
        line = JsonLogFormatter().format(_record("time.started", extra_data={"interval_id": 3}))
    finally:
        principal_ctx_var.reset(principal_token)
        request_id_ctx_var.reset(request_token)

    payload = json.loads(line)
    assert payload["message"] == "time.started"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "req-1"
    assert payload["principal"] == 7
    assert payload["interval_id"] == 3
    assert payload["timestamp"].endswith("Z")


def test_formatter_omits_missing_context():
    payload = json.loads(JsonLogFormatter().format(_record("plain")))

    assert "request_id" not in payload
    assert "principal" not in payload


def test_configure_logging_replaces_root_handlers(restore_root_logger):
    logging.root.addHandler(logging.NullHandler())

    configure_logging("DEBUG")

    assert len(logging.root.handlers) == 1
    assert isinstance(logging.root.handlers[0].formatter, JsonLogFormatter)
    assert logging.root.level == logging.DEBUG
    assert logging.getLogger("uvicorn.access").disabled
