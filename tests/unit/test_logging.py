from __future__ import annotations

import json
import logging

import pytest

from pgdocs.config import get_settings
from pgdocs.utils.logging import (
    PACKAGE_LOGGER,
    JsonFormatter,
    _json_formatter,
    configure_logging,
    get_logger,
)

EXPECTED_ROWS = 10


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="pgdocs.stores",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="[CONNECT] %s",
        args=("people",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_extra_fields() -> None:
    payload = json.loads(_json_formatter(_record(rows=EXPECTED_ROWS, table="people")))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "pgdocs.stores"
    assert payload["message"] == "[CONNECT] people"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["table"] == "people"
    assert payload["time"].endswith("+00:00")
    assert "pathname" not in payload
    assert "args" not in payload


def test_json_formatter_flattens_nested_extra_and_stringifies_unknown_types() -> None:
    payload = json.loads(_json_formatter(_record(extra={"mode": "hybrid"}, criteria_keys={"age"})))

    assert payload["mode"] == "hybrid"
    assert "extra" not in payload
    assert payload["criteria_keys"] == "{'age'}"


def test_get_logger_namespaces_under_package() -> None:
    assert get_logger().name == PACKAGE_LOGGER
    assert get_logger("pgdocs.driver").name == "pgdocs.driver"
    assert get_logger("app.module").name == "pgdocs.app.module"


def test_configure_logging_only_touches_package_logger() -> None:
    root_handlers = list(logging.getLogger().handlers)

    configure_logging(level="debug", json_logs=True)

    package = logging.getLogger(PACKAGE_LOGGER)
    assert package.level == logging.DEBUG
    assert package.propagate is False
    assert any(isinstance(h.formatter, JsonFormatter) for h in package.handlers)
    assert logging.getLogger().handlers == root_handlers


def test_configure_logging_reads_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_JSON", "false")
    get_settings.cache_clear()
    try:
        configure_logging()
    finally:
        get_settings.cache_clear()

    package = logging.getLogger(PACKAGE_LOGGER)
    assert package.level == logging.WARNING
    assert not any(isinstance(h.formatter, JsonFormatter) for h in package.handlers)
