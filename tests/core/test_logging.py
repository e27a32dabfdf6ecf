from __future__ import annotations

import json
import logging
import sys

from org_service.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(
    level: int = logging.INFO, msg: str = "hello", lineno: int = 1, exc_info=None
) -> logging.LogRecord:
    return logging.LogRecord(
        name="org_service.test",
        level=level,
        pathname="svc.py",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_noisy_libraries_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_picks_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)

    setup_logging("info")
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _ContainerFormatter)


# ---- container format ----


def test_container_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record())
    assert "hello" in output
    assert "[svc.py:" not in output


def test_container_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(
        _record(logging.WARNING, "denied", lineno=42)
    )
    assert "denied" in output
    assert "[svc.py:42]" in output


# ---- JSON format ----


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(msg="created org")))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "org_service.test"
    assert parsed["message"] == "created org"
    assert "timestamp" in parsed
    # absent context stays absent
    assert "user_id" not in parsed


def test_json_formatter_promotes_request_context() -> None:
    record = _record(logging.WARNING, "Access denied")
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.user_id = "u-42"  # type: ignore[attr-defined]
    record.org_id = "o-7"  # type: ignore[attr-defined]
    record.status_code = 403  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["user_id"] == "u-42"
    assert parsed["org_id"] == "o-7"
    assert parsed["status_code"] == 403


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("test error")
    except ValueError:
        record = _record(logging.ERROR, "Something failed", exc_info=sys.exc_info())
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "ValueError: test error" in parsed["exception"]
