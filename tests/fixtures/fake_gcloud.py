#!/usr/bin/env python3
"""Fake gcloud for emulator tests.

Behaviour is selected with environment variables:

    FAKE_GCLOUD_MODE       ready (default) | silent | malformed | eof
    FAKE_GCLOUD_HOST       endpoint announced in ready mode (default http://localhost:8081)
    FAKE_GCLOUD_DELAY      seconds to wait before announcing (default 0)
    FAKE_GCLOUD_ARGS_FILE  if set, argv[1:] is written there as JSON

ready/silent/malformed keep running until killed, like the real emulator.
"""

from __future__ import annotations

import json
import os
import sys
import time


def err(line: str) -> None:
    print(line, file=sys.stderr, flush=True)


def hang() -> None:
    while True:
        time.sleep(1)


def main() -> None:
    args_file = os.getenv("FAKE_GCLOUD_ARGS_FILE")
    if args_file:
        with open(args_file, "w", encoding="utf-8") as f:
            json.dump(sys.argv[1:], f)

    mode = os.getenv("FAKE_GCLOUD_MODE", "ready")
    host = os.getenv("FAKE_GCLOUD_HOST", "http://localhost:8081")
    delay = float(os.getenv("FAKE_GCLOUD_DELAY", "0"))

    print("fake gcloud stdout", flush=True)
    err("Executing: cloud_datastore_emulator start --host=localhost --port=8081")
    time.sleep(delay)

    if mode == "ready":
        err("[datastore] API endpoint: " + host)
        err("[datastore]   export DATASTORE_EMULATOR_HOST=" + host)
        err("[datastore] Dev App Server is now running.")
        hang()
    elif mode == "malformed":
        err("[datastore]   export DATASTORE_EMULATOR_HOST=not a url")
        hang()
    elif mode == "silent":
        hang()
    elif mode == "eof":
        err("[datastore] something went wrong")
        sys.exit(1)
    else:
        err(f"unknown FAKE_GCLOUD_MODE {mode!r}")
        sys.exit(2)


if __name__ == "__main__":
    main()
