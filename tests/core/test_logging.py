from __future__ import annotations

import logging

import pytest

from collab.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(level: int, msg: str, lineno: int = 1) -> logging.LogRecord:
    return logging.LogRecord(
        name="collab.services.project_lifecycle",
        level=level,
        pathname="project_lifecycle.py",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_installs_single_handler() -> None:
    setup_logging("info")
    setup_logging("info")
    assert len(logging.getLogger().handlers) == 1


def test_setup_logging_picks_formatter() -> None:
    setup_logging("info")
    assert isinstance(logging.getLogger().handlers[0].formatter, _ContainerFormatter)
    setup_logging("info", json_format=True)
    assert isinstance(logging.getLogger().handlers[0].formatter, _JsonFormatter)


def test_setup_logging_quiets_sqlalchemy_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO, "claim_milestone ok"))
    assert "claim_milestone ok" in output
    assert "[project_lifecycle.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(
        _record(logging.WARNING, "Rejected claim_milestone", lineno=42)
    )
    assert "Rejected claim_milestone" in output
    assert "[project_lifecycle.py:42]" in output
