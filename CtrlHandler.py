# CtrlHandler.py

import signal
import threading
from typing import List

# Set once by the interrupt handler, never cleared; the send loop polls it.
STOP_REQUESTED = threading.Event()

# Ctrl+C, termination request, Ctrl+Break (Windows), console close / logoff (POSIX)
STOP_SIGNAL_NAMES = ("SIGINT", "SIGTERM", "SIGBREAK", "SIGHUP")


def install_ctrl_handler(event: threading.Event = STOP_REQUESTED) -> List[int]:
    """
    Register a handler that only sets `event` for every stop signal the platform knows.
    ValueError/OSError from signal.signal() is left to the caller.
    """
    def _handler(signum, frame):
        event.set()

    installed = []
    for name in STOP_SIGNAL_NAMES:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        signal.signal(signum, _handler)
        installed.append(signum)
    return installed
