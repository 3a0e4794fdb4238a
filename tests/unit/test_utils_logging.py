from __future__ import annotations

import json

import pytest
import structlog

from dsemu.utils.logging import log_path, setup_logging


def test_setup_logging_produces_json(capsys: pytest.CaptureFixture[str]) -> None:
    """Configure logging and verify that structlog writes JSON lines to stderr."""
    setup_logging()
    log = structlog.get_logger()
    log.info("hello", action="emulator_start", pid=None, port=8081)

    captured = capsys.readouterr()
    assert captured.out == ""  # stdout is reserved for the export line
    out = captured.err.strip().splitlines()[-1]
    data = json.loads(out)
    assert data["event"] == "hello"
    assert data["message"] == "hello"
    assert data["level"] in ("info", "INFO")
    assert "timestamp" in data
    assert data["port"] == 8081
    assert "pid" not in data  # None values are dropped


def test_records_are_duplicated_to_file(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging()
    structlog.get_logger().info("file-sink-check", marker=1234)
    capsys.readouterr()
    lines = log_path().read_text(encoding="utf-8").splitlines()
    assert any(json.loads(line).get("event") == "file-sink-check" for line in lines[-20:])


def test_bound_context_is_merged_until_unbound(capsys: pytest.CaptureFixture[str]) -> None:
    from dsemu.utils.logging import bind_context, get_logger, unbind_context

    log = get_logger("ctx-test")
    bind_context(emulator="datastore", pid=4321)
    try:
        log.info("with-context")
    finally:
        unbind_context()
    log.info("without-context")

    records = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
    bound = next(r for r in records if r["event"] == "with-context")
    unbound = next(r for r in records if r["event"] == "without-context")
    assert (bound["emulator"], bound["pid"]) == ("datastore", 4321)
    assert "pid" not in unbound and "emulator" not in unbound
