from __future__ import annotations

from collections.abc import Generator

import allure
import pytest

from ..config.loader import load_settings
from ..config.models import EmulatorConfig, Settings
from ..emulator.launcher import launch_datastore_emulator
from ..utils.logging import get_logger

_logger = get_logger(__name__)


@pytest.fixture(scope="session")
def dsemu_settings(pytestconfig: pytest.Config) -> Settings:
    """
    Load emulator settings once per session.

    Supports overriding via command-line options:
      --dsemu-config <path>
      --dsemu-consistency <value>
    """
    cfg_path: str | None = pytestconfig.getoption("--dsemu-config")
    s: Settings = load_settings(cfg_path)

    override: str | None = pytestconfig.getoption("--dsemu-consistency")
    if override:
        s = s.model_copy(update={"emulator": EmulatorConfig(consistency=override)})
    return s


@pytest.fixture(scope="session")
def datastore_emulator(dsemu_settings: Settings) -> Generator[str, None, None]:
    """
    Run a datastore emulator for the whole test session and yield its endpoint.

    DATASTORE_EMULATOR_HOST is exported (unless disabled in settings) so client
    libraries created inside tests pick the emulator up. A failed launch still
    kills whatever was spawned before the session errors out.
    """
    with allure.step("Start datastore emulator"):
        result = launch_datastore_emulator(dsemu_settings.emulator, settings=dsemu_settings)
    try:
        if not result.ok:
            pytest.fail(f"Datastore emulator failed to start: {result.error}", pytrace=False)
        yield result.require_endpoint()
    finally:
        with allure.step("Stop datastore emulator"):
            result.close()
            _logger.info("Datastore emulator stopped")
