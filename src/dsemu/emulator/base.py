from __future__ import annotations

from abc import ABC, abstractmethod


class Emulator(ABC):
    """
    Abstract base class for locally spawned emulators.

    Defines the lifecycle every emulator implementation follows:
    start it and wait until it is usable, then terminate it exactly once.
    """

    @abstractmethod
    def start(self) -> None:
        """
        Spawn the emulator process and block until it is ready.

        Implementations must raise an EmulatorError subclass when the
        emulator cannot be started or does not become ready.
        """
        ...

    @abstractmethod
    def terminate(self) -> None:
        """
        Kill the emulator process.

        Must be idempotent: once the process is gone, further calls are no-ops.
        """
        ...
