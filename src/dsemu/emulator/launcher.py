from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from types import TracebackType

from ..config.models import EmulatorConfig, Settings
from ..errors import EmulatorError, EndpointNotFoundError
from ..utils.logging import get_logger
from .datastore import DatastoreEmulator

_log = get_logger(__name__)


@dataclass(slots=True)
class LaunchResult:
    """
    Outcome of launch_datastore_emulator().

    `close` is always set, including when startup failed, so a partially
    started child can still be killed by the caller.
    """

    close: Callable[[], None]
    emulator: DatastoreEmulator
    endpoint: str | None = None  # DATASTORE_EMULATOR_HOST value on success
    error: EmulatorError | None = None  # Startup failure, if any

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Raise the startup error, if there was one."""
        if self.error is not None:
            raise self.error

    def require_endpoint(self) -> str:
        """Return the endpoint, raising the startup error if the launch failed."""
        self.raise_for_error()
        if self.endpoint is None:
            raise EndpointNotFoundError("unable to find API server URL")
        return self.endpoint

    def __enter__(self) -> LaunchResult:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def launch_datastore_emulator(
    config: EmulatorConfig, *, settings: Settings | None = None
) -> LaunchResult:
    """
    Start a datastore emulator and wait for it to become ready.

    Args:
        config (EmulatorConfig): Emulator options (consistency).
        settings (Settings | None): gcloud command, timeout and export options.
                                    Defaults to Settings() from the environment.

    Returns:
        LaunchResult: Close handle plus either the endpoint or the startup error.
                      The error is exactly the one raised by DatastoreEmulator.start().
    """
    settings = settings or Settings()
    emu = DatastoreEmulator.from_settings(settings, config)
    try:
        emu.start()
    except EmulatorError as e:
        _log.error(
            "Failed to launch datastore emulator",
            action="emulator_launch_failed",
            error=str(e),
            kind=type(e).__name__,
        )
        return LaunchResult(close=emu.terminate, emulator=emu, error=e)
    return LaunchResult(close=emu.terminate, emulator=emu, endpoint=emu.endpoint)


@contextmanager
def datastore_emulator(
    config: EmulatorConfig, *, settings: Settings | None = None
) -> Iterator[str]:
    """
    Run a datastore emulator for the duration of a with-block and yield its endpoint.

    The emulator is killed on exit, and also before a startup error is re-raised.
    """
    result = launch_datastore_emulator(config, settings=settings)
    with result:
        yield result.require_endpoint()
