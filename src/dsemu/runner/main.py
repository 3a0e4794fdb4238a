from __future__ import annotations

import shlex
import signal
import threading
from types import FrameType

import typer

from ..config.loader import load_settings
from ..config.models import EmulatorConfig, Settings
from ..emulator.datastore import DATASTORE_EMULATOR_HOST
from ..emulator.launcher import launch_datastore_emulator
from ..errors import EmulatorError
from ..utils.cli import build_command

# Create a CLI application using Typer
app = typer.Typer(add_completion=False, help="Run the Cloud Datastore emulator locally.")


def _raise_interrupt(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt


def _wait_for_interrupt() -> None:
    """
    Block until Ctrl+C or SIGTERM; the emulator keeps running in the background.

    SIGTERM is turned into KeyboardInterrupt so a supervisor stopping us still
    runs the caller's cleanup and the gcloud process tree is killed.
    """
    previous = None
    if threading.current_thread() is threading.main_thread():
        previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)


def _resolve(config: str | None, consistency: str | None, timeout: float | None) -> Settings:
    """Load settings from YAML/env and apply command-line overrides."""
    s = load_settings(config)
    updates: dict[str, object] = {}
    if consistency is not None:
        updates["emulator"] = EmulatorConfig(consistency=consistency)
    if timeout is not None:
        updates["start_timeout"] = timeout
    return s.model_copy(update=updates) if updates else s


@app.command()
def start(
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
    consistency: str = typer.Option(None, help="Emulator consistency, e.g. 0.9"),
    timeout: float = typer.Option(None, help="Seconds to wait for the emulator endpoint"),
) -> None:
    """
    Start the emulator, print its export line and keep it running until interrupted.

    Example usage:
        dsemu start --consistency 1.0

    The export line is the only thing dsemu itself writes to stdout; logs go to
    stderr. The emulator's own stdout is passed through as well.
    """
    s = _resolve(config, consistency, timeout)
    result = launch_datastore_emulator(s.emulator, settings=s)
    if not result.ok:
        result.close()
        typer.echo(f"error: {result.error}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"export {DATASTORE_EMULATOR_HOST}={result.endpoint}")
    try:
        _wait_for_interrupt()
    finally:
        try:
            result.close()
        except EmulatorError as e:
            typer.echo(f"error: {e}", err=True)
            raise typer.Exit(code=1) from e


@app.command()
def command(
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
    consistency: str = typer.Option(None, help="Emulator consistency, e.g. 0.9"),
) -> None:
    """Print the gcloud command line that `start` would run."""
    s = _resolve(config, consistency, None)
    typer.echo(shlex.join(build_command(s.gcloud_command, s.emulator.consistency)))


if __name__ == "__main__":
    app()
