from __future__ import annotations


class EmulatorError(RuntimeError):
    """Base class for every failure raised while launching or stopping an emulator."""


class EmulatorSpawnError(EmulatorError):
    """The emulator program could not be started (missing binary, permissions, ...)."""


class EmulatorStartTimeout(EmulatorError, TimeoutError):
    """No endpoint announcement was seen before the startup deadline."""


class MalformedEndpointError(EmulatorError):
    """The announcement line matched but its endpoint token is not a usable URL."""

    def __init__(self, token: str, reason: str) -> None:
        super().__init__(f"failed to parse API URL {token!r}: {reason}")
        self.token = token


class StreamReadError(EmulatorError):
    """Reading the emulator's stderr failed before an endpoint was found."""


class EndpointNotFoundError(EmulatorError):
    """The emulator's stderr reached EOF without an endpoint announcement."""


class EmulatorTerminateError(EmulatorError):
    """Killing the emulator process failed."""
