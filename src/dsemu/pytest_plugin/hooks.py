from __future__ import annotations

import os
from typing import Any

import allure

from ..utils.logging import log_path

_TAIL_LINES = 200


def pytest_runtest_makereport(item: Any, call: Any) -> None:
    """
    Attach the tail of the emulator log to the Allure report when a test
    that uses the datastore_emulator fixture fails.
    """
    if getattr(call, "when", None) != "call" or getattr(call, "excinfo", None) is None:
        return
    if "datastore_emulator" not in getattr(item, "fixturenames", ()):
        return

    path = log_path()
    if not os.path.exists(path):
        return
    with open(path, encoding="utf-8", errors="ignore") as f:
        content = "".join(f.readlines()[-_TAIL_LINES:])
    if content:
        allure.attach(
            content,
            name="Datastore emulator log",
            attachment_type=allure.attachment_type.TEXT,
        )
