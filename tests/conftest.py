from __future__ import annotations

import sys
from pathlib import Path

import pytest

pytest_plugins = ["pytester"]

FAKE_GCLOUD = Path(__file__).parent / "fixtures" / "fake_gcloud.py"


@pytest.fixture
def fake_gcloud() -> list[str]:
    """gcloud command prefix that runs the fake emulator script."""
    return [sys.executable, str(FAKE_GCLOUD)]


@pytest.fixture(autouse=True)
def _clean_emulator_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep DATASTORE_EMULATOR_HOST from leaking between tests."""
    monkeypatch.delenv("DATASTORE_EMULATOR_HOST", raising=False)
