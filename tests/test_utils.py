"""Tests for utility helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from outlinesync.utils import logging as logging_utils


@pytest.fixture(autouse=True)
def _reset_package_logging() -> Iterator[None]:
    yield
    logging_utils.shutdown_logging()


def _flush() -> None:
    for handler in logging.getLogger(logging_utils.PACKAGE_LOGGER).handlers:
        handler.flush()


def test_setup_logging_creates_rotating_file(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    log_path = logging_utils.setup_logging(level=logging.INFO, log_dir=log_dir)

    logging_utils.get_logger("tests").info("Logging smoke test")
    _flush()

    assert log_path == log_dir / "outlinesync.log"
    assert logging_utils.get_log_path() == log_path
    contents = log_path.read_text(encoding="utf-8")
    assert "| INFO     | outlinesync.tests | Logging smoke test" in contents


def test_setup_logging_leaves_root_logger_alone(tmp_path: Path) -> None:
    root_handlers = list(logging.getLogger().handlers)

    logging_utils.setup_logging(log_dir=tmp_path)
    logging.getLogger("elsewhere").warning("not ours")
    _flush()

    assert logging.getLogger().handlers == root_handlers
    assert "not ours" not in (tmp_path / "outlinesync.log").read_text(encoding="utf-8")


def test_setup_logging_reads_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OUTLINESYNC_LOG_DIR", str(tmp_path / "from-env"))
    monkeypatch.setenv("OUTLINESYNC_LOG_LEVEL", "debug")

    log_path = logging_utils.setup_logging()

    assert log_path.parent == tmp_path / "from-env"
    assert logging.getLogger("outlinesync").level == logging.DEBUG


def test_setup_logging_rejects_unknown_level(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        logging_utils.setup_logging("chatty", log_dir=tmp_path)


def test_event_bus_debug_output_is_opt_in(tmp_path: Path) -> None:
    logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path)
    assert logging.getLogger("outlinesync.events").level == logging.INFO

    logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, debug_events=True, force=True)
    assert logging.getLogger("outlinesync.events").level == logging.DEBUG


def test_setup_logging_is_idempotent_without_force(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "one")

    second = logging_utils.setup_logging(log_dir=tmp_path / "two")

    assert second == first
    assert len(logging.getLogger("outlinesync").handlers) == 1


def test_shutdown_logging_detaches_handlers(tmp_path: Path) -> None:
    logging_utils.setup_logging(log_dir=tmp_path, console=True)

    logging_utils.shutdown_logging()

    assert logging.getLogger("outlinesync").handlers == []
    assert logging_utils.get_log_path() is None


def test_get_logger_namespaces_names() -> None:
    assert logging_utils.get_logger("host").name == "outlinesync.host"
    assert logging_utils.get_logger("outlinesync.manager").name == "outlinesync.manager"
