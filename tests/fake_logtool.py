"""Stand-in for a logcat-style command, driven by environment variables.

    FAKE_LOG_STORE   file holding buffered records, one "<pid> <message>" per line
    FAKE_LOG_DELAY   seconds to sleep before each streamed line
    FAKE_LOG_HOLD    keep running after the last streamed line until killed
    FAKE_LOG_FAIL    exit with status 3 and a message on stderr
    FAKE_LOG_SPAWNS  file to append one line to per invocation
    FAKE_LOG_IGNORE_TERM  ignore SIGTERM
"""

import os
import signal
import sys
import time
from pathlib import Path


def main(args: list[str]) -> int:
    if os.environ.get("FAKE_LOG_IGNORE_TERM"):
        signal.signal(signal.SIGTERM, signal.SIG_IGN)

    spawns = os.environ.get("FAKE_LOG_SPAWNS")
    if spawns:
        with open(spawns, "a") as f:
            f.write(" ".join(args) + "\n")

    if os.environ.get("FAKE_LOG_FAIL"):
        sys.stderr.write("fake log buffer unavailable\n")
        return 3

    store = Path(os.environ["FAKE_LOG_STORE"])

    if "-c" in args:
        store.write_text("")
        return 0

    pid = None
    for arg in args:
        if arg.startswith("--pid="):
            pid = arg.split("=", 1)[1]

    records = store.read_text().splitlines() if store.exists() else []
    if pid is not None:
        records = [r for r in records if r.split(" ", 1)[0] == pid]

    if "-d" in args:
        for record in records:
            print(record)
        return 0

    delay = float(os.environ.get("FAKE_LOG_DELAY", "0"))
    for record in records:
        time.sleep(delay)
        print(record, flush=True)

    if os.environ.get("FAKE_LOG_HOLD"):
        while True:
            time.sleep(1)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
