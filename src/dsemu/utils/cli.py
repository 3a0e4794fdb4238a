from __future__ import annotations

import subprocess
from collections.abc import Sequence
from typing import Any

# Fixed subcommand tokens that start the datastore emulator under gcloud
DATASTORE_START_ARGS: tuple[str, ...] = ("beta", "emulators", "datastore", "start")


def build_command(gcloud_command: Sequence[str], consistency: float | str) -> list[str]:
    """
    Build the emulator command line.

    Args:
        gcloud_command (Sequence[str]): Program prefix, normally ["gcloud"].
        consistency (float | str): Value passed through as --consistency=<value>.

    Returns:
        list[str]: Full argument vector for subprocess.
    """
    return [*gcloud_command, *DATASTORE_START_ARGS, f"--consistency={consistency}"]


def spawn(args: Sequence[str]) -> subprocess.Popen[Any]:
    """
    Start a long-running child with stdout inherited and stderr piped.

    stdout goes straight to our own stdout; stderr is returned as a
    line-buffered text stream on the Popen object for the caller to read.

    Raises:
        OSError: If the program cannot be executed.
    """
    return subprocess.Popen(
        list(args),
        stdout=None,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        text=True,
        encoding="utf-8",
        errors="replace",
        bufsize=1,
    )
