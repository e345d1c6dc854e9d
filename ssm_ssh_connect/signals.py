# ssm_ssh_connect/signals.py
from __future__ import annotations

import logging
import os
import signal

log = logging.getLogger(__name__)


def _shutdown(signum, frame) -> None:
    log.warning("received shutdown signal %s: exiting", signal.Signals(signum).name)
    logging.shutdown()
    # No unwind: in-flight AWS calls and the plugin wait are abandoned.
    os._exit(0)


def _ignore_hup(signum, frame) -> None:
    # Terminals and session managers send stray SIGHUPs to ProxyCommands.
    log.info("received SIGHUP signal: ignoring")


def install_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _ignore_hup)
