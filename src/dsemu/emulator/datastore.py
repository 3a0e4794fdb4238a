"""
Datastore emulator instance: spawn ``gcloud beta emulators datastore start``,
watch its stderr for the endpoint announcement and kill it on request.
"""

from __future__ import annotations

import os
import queue
import re
import subprocess
import sys
import threading
from collections.abc import Callable, Iterator, Sequence
from enum import Enum
from typing import IO, Any, TextIO
from urllib.parse import urlsplit

import psutil

from ..config.models import EmulatorConfig, Settings
from ..errors import (
    EmulatorError,
    EmulatorSpawnError,
    EmulatorStartTimeout,
    EmulatorTerminateError,
    EndpointNotFoundError,
    MalformedEndpointError,
    StreamReadError,
)
from ..utils.cli import build_command, spawn
from ..utils.logging import bind_context, get_logger, unbind_context
from .base import Emulator

# Environment variable read by Cloud Datastore client libraries
DATASTORE_EMULATOR_HOST = "DATASTORE_EMULATOR_HOST"

# Announcement printed by gcloud on stderr once the emulator is bound, e.g.
#   [datastore]   export DATASTORE_EMULATOR_HOST=localhost:8081
# This wording is owned by gcloud; a format change breaks readiness detection.
ENDPOINT_ANNOUNCEMENT_RE = re.compile(r"export DATASTORE_EMULATOR_HOST=(\S+)")

START_TIMEOUT_SEC = 15.0
KILL_WAIT_SEC = 5.0  # How long to wait for the killed child to be reaped


class EmulatorState(str, Enum):
    """Lifecycle of a single emulator instance."""

    UNSTARTED = "unstarted"
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


def parse_endpoint(token: str) -> str:
    """
    Validate the endpoint token captured from the announcement line.

    Accepts an http(s) URL with a host (``http://localhost:8081``) or the
    bare ``host:port`` form gcloud prints. The token is returned unchanged.

    Raises:
        MalformedEndpointError: If the token is not a usable endpoint.
    """
    has_scheme = "://" in token
    try:
        parts = urlsplit(token if has_scheme else f"//{token}")
        port = parts.port
    except ValueError as e:
        raise MalformedEndpointError(token, str(e)) from e

    if has_scheme and parts.scheme not in ("http", "https"):
        raise MalformedEndpointError(token, f"unsupported scheme {parts.scheme!r}")
    if not parts.hostname:
        raise MalformedEndpointError(token, "missing host")
    if not has_scheme and port is None:
        raise MalformedEndpointError(token, "missing port")
    return token


class DatastoreEmulator(Emulator):
    """
    Owns one ``gcloud beta emulators datastore start`` child process.

    start() spawns the child and races a background stderr scan against a
    deadline. The scan thread records the endpoint before it publishes its
    outcome into a single-slot queue, so it can always finish even when
    start() has already given up on it.
    """

    def __init__(
        self,
        config: EmulatorConfig,
        *,
        gcloud_command: Sequence[str] = ("gcloud",),
        start_timeout: float = START_TIMEOUT_SEC,
        export_env: bool = True,
        forward_stderr: bool = True,
        stderr_sink: TextIO | None = None,
    ) -> None:
        self.config = config
        self.gcloud_command = list(gcloud_command)
        self.start_timeout = start_timeout
        self.export_env = export_env
        self.forward_stderr = forward_stderr
        self._stderr_sink = stderr_sink

        self.proc: subprocess.Popen[Any] | None = None
        self.pid: int | None = None  # PID of the last spawned child, kept after termination
        self.endpoint: str | None = None  # Base URL of the API server
        self.admin_url: str | None = None  # Base URL of the admin server (not announced)
        self.state = EmulatorState.UNSTARTED
        self._release_funcs: list[Callable[[], None]] = []
        self._reader: threading.Thread | None = None
        # Guards the endpoint write against the timeout path failing the instance
        self._state_lock = threading.Lock()
        self._log = get_logger(__name__)

    @classmethod
    def from_settings(
        cls, settings: Settings, config: EmulatorConfig | None = None
    ) -> DatastoreEmulator:
        """Create an instance from Settings; `config` overrides settings.emulator."""
        return cls(
            config or settings.emulator,
            gcloud_command=settings.gcloud_command,
            start_timeout=settings.start_timeout,
            export_env=settings.export_env,
            forward_stderr=settings.forward_stderr,
        )

    @property
    def command(self) -> list[str]:
        return build_command(self.gcloud_command, self.config.consistency)

    def add_release_func(self, func: Callable[[], None]) -> None:
        """Register a cleanup action to run once when the emulator is terminated."""
        self._release_funcs.append(func)

    # ------------------------
    # Startup
    # ------------------------
    def start(self) -> None:
        """
        Spawn the emulator and wait until it announces its endpoint.

        Raises:
            EmulatorSpawnError: The gcloud program could not be executed.
            EmulatorStartTimeout: No announcement within start_timeout; the child is killed.
            MalformedEndpointError: The announced endpoint could not be parsed.
            StreamReadError: Reading stderr failed.
            EndpointNotFoundError: stderr ended without an announcement.
        """
        if self.state is not EmulatorState.UNSTARTED:
            raise EmulatorError(f"emulator cannot be started from state {self.state.value!r}")

        self.state = EmulatorState.STARTING
        try:
            self._start_child()
        except EmulatorError:
            self.state = EmulatorState.FAILED
            raise
        self.state = EmulatorState.READY

    def _start_child(self) -> None:
        cmd = self.command
        self._log.info(
            "Starting datastore emulator",
            action="emulator_start",
            cmd=" ".join(cmd),
            consistency=str(self.config.consistency),
        )
        try:
            self.proc = spawn(cmd)
        except OSError as e:
            raise EmulatorSpawnError(f"failed to start {cmd[0]!r}: {e}") from e
        self.pid = self.proc.pid
        bind_context(emulator="datastore", pid=self.pid)
        self._log.info("Emulator process started", action="emulator_started")

        if self.proc.stderr is None:
            raise EmulatorSpawnError(f"stderr of {cmd[0]!r} is not piped")
        # maxsize=1: the reader publishes exactly one outcome and must never block on it
        results: queue.Queue[EmulatorError | None] = queue.Queue(maxsize=1)
        self._reader = threading.Thread(
            target=self._read_stderr,
            args=(self.proc.stderr, results),
            name="datastore-emulator-stderr",
            daemon=True,
        )
        self._reader.start()

        try:
            err = results.get(timeout=self.start_timeout)
        except queue.Empty:
            with self._state_lock:
                self.state = EmulatorState.FAILED
                self.endpoint = None
            self._log.error(
                "Emulator did not announce its endpoint within the timeout",
                action="emulator_ready_timeout",
                timeout=self.start_timeout,
            )
            self._kill_after_timeout()
            raise EmulatorStartTimeout(
                f"timeout starting child process after {self.start_timeout}s"
            ) from None

        if err is not None:
            self._log.error(
                "Emulator startup failed",
                action="emulator_start_failed",
                error=str(err),
            )
            raise err

        if self.endpoint is None:
            raise EndpointNotFoundError("unable to find API server URL")

        self._log.info(
            "Datastore emulator is ready",
            action="emulator_ready",
            endpoint=self.endpoint,
        )
        if self.export_env:
            os.environ[DATASTORE_EMULATOR_HOST] = self.endpoint

    def _read_stderr(self, stream: IO[str], results: queue.Queue[EmulatorError | None]) -> None:
        """
        Reader thread body.

        Publishes one outcome: None once an endpoint is recorded or stderr hits
        EOF, or an EmulatorError. Afterwards any remaining output is forwarded
        unscanned so the child never blocks on a full pipe.
        """
        lines = iter(stream)
        try:
            try:
                outcome = self._scan_for_endpoint(lines)
            except (OSError, ValueError) as e:
                results.put(StreamReadError(f"error reading child process stderr: {e}"))
                return
            results.put(outcome)

            for line in lines:
                self._forward(line)
        except (OSError, ValueError) as e:
            # The pipe is closed under us when the child is killed
            self._log.debug("Emulator stderr closed", pid=self.pid, error=str(e))
        finally:
            try:
                stream.close()
            except OSError:
                pass

    def _scan_for_endpoint(self, lines: Iterator[str]) -> EmulatorError | None:
        for line in lines:
            self._forward(line)
            match = ENDPOINT_ANNOUNCEMENT_RE.search(line)
            if match is None:
                continue
            try:
                endpoint = parse_endpoint(match.group(1))
            except MalformedEndpointError as e:
                return e
            with self._state_lock:
                # A late announcement must not revive an instance that timed out
                if self.state is EmulatorState.STARTING:
                    self.endpoint = endpoint
            return None
        return None

    def _forward(self, line: str) -> None:
        if not self.forward_stderr:
            return
        sink = self._stderr_sink or sys.stderr
        sink.write(line)
        sink.flush()

    # ------------------------
    # Termination
    # ------------------------
    def terminate(self) -> None:
        """
        Kill the emulator if it is still owned; otherwise do nothing.

        The process handle is cleared after every kill attempt so that a
        second call is a no-op. A failed kill is raised once as
        EmulatorTerminateError.
        """
        proc = self.proc
        if proc is None:
            return

        self._log.info("Stopping datastore emulator", action="emulator_stop")
        try:
            self._kill(proc)
        except OSError as e:
            raise EmulatorTerminateError(f"failed to kill emulator (pid={proc.pid}): {e}") from e
        else:
            self._log.info("Datastore emulator stopped", action="emulator_stopped")
        finally:
            self.proc = None
            self.state = EmulatorState.CLOSED
            self._run_release_funcs()
            unbind_context()

    def _kill_after_timeout(self) -> None:
        proc = self.proc
        self.proc = None
        if proc is None:
            return
        try:
            self._kill(proc)
        except OSError as e:
            self._log.warning("Failed to kill emulator after timeout", error=str(e))
        finally:
            unbind_context()

    def _kill(self, proc: subprocess.Popen[Any]) -> None:
        """
        SIGKILL the child and everything it spawned, then reap it.

        gcloud runs the emulator as a grandchild process that inherits the
        stderr pipe, so the whole tree has to go for the reader to see EOF.
        """
        try:
            children = psutil.Process(proc.pid).children(recursive=True)
        except psutil.Error:
            children = []

        proc.kill()
        for child in children:
            try:
                child.kill()
            except psutil.NoSuchProcess:
                pass
            except psutil.Error as e:
                self._log.warning(
                    "Failed to kill emulator subprocess", child_pid=child.pid, error=str(e)
                )

        try:
            proc.wait(timeout=KILL_WAIT_SEC)
        except subprocess.TimeoutExpired:
            self._log.warning("Emulator did not exit after kill")

    def _run_release_funcs(self) -> None:
        funcs, self._release_funcs = self._release_funcs, []
        for func in reversed(funcs):
            try:
                func()
            except Exception as e:
                self._log.warning("Release function failed", func=repr(func), error=str(e))
