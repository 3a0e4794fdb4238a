from .base import Emulator
from .datastore import (
    DATASTORE_EMULATOR_HOST,
    ENDPOINT_ANNOUNCEMENT_RE,
    DatastoreEmulator,
    EmulatorState,
    parse_endpoint,
)
from .launcher import LaunchResult, datastore_emulator, launch_datastore_emulator

__all__ = [
    "DATASTORE_EMULATOR_HOST",
    "ENDPOINT_ANNOUNCEMENT_RE",
    "DatastoreEmulator",
    "Emulator",
    "EmulatorState",
    "LaunchResult",
    "datastore_emulator",
    "launch_datastore_emulator",
    "parse_endpoint",
]
