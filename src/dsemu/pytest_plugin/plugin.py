"""pytest11 entry point: registers dsemu options, hooks and fixtures."""

from .fixtures import datastore_emulator, dsemu_settings
from .hooks import pytest_runtest_makereport
from .options import pytest_addoption

__all__ = [
    "datastore_emulator",
    "dsemu_settings",
    "pytest_addoption",
    "pytest_runtest_makereport",
]
