from __future__ import annotations

import subprocess
from typing import Any

import pytest

from dsemu.utils.cli import build_command, spawn


def test_build_command() -> None:
    assert build_command(["gcloud"], 0.9) == [
        "gcloud",
        "beta",
        "emulators",
        "datastore",
        "start",
        "--consistency=0.9",
    ]


def test_build_command_keeps_program_prefix_and_raw_value() -> None:
    cmd = build_command(["python", "fake.py"], "not-a-number")
    assert cmd[:2] == ["python", "fake.py"]
    assert cmd[-1] == "--consistency=not-a-number"


def test_spawn_pipes_stderr_only(monkeypatch: pytest.MonkeyPatch) -> None:
    """spawn() must leave stdout inherited and pipe stderr as text."""
    spawned: dict[str, Any] = {}

    class DummyP:
        def __init__(self, args: list[str], **kwargs: Any) -> None:
            spawned["args"] = args
            spawned["kwargs"] = kwargs

    monkeypatch.setattr("dsemu.utils.cli.subprocess.Popen", DummyP)
    p = spawn(["gcloud", "beta"])
    assert isinstance(p, DummyP)
    assert spawned["args"] == ["gcloud", "beta"]
    assert spawned["kwargs"]["stdout"] is None
    assert spawned["kwargs"]["stderr"] is subprocess.PIPE
    assert spawned["kwargs"]["text"] is True


def test_spawn_missing_binary_raises(tmp_path: Any) -> None:
    with pytest.raises(OSError):
        spawn([str(tmp_path / "nope")])
