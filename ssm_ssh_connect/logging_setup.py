# ssm_ssh_connect/logging_setup.py
from __future__ import annotations

import logging
from pathlib import Path

from .errors import StartupError

FMT = "%(asctime)s [%(levelname)s] pid=%(process)d %(name)s: %(message)s"


def prepare_app_home(app_home: Path) -> Path:
    try:
        app_home.mkdir(mode=0o750, parents=True, exist_ok=True)
    except OSError as e:
        raise StartupError(f"failed to create app home directory {app_home}: {e}") from e
    return app_home


def setup_logging(log_file: Path, *, debug: bool = False, max_bytes: int = 1024 * 1024) -> logging.Handler:
    """
    File-only logging. stdout belongs to the SSH byte stream, so no stream handler.
    A log file above max_bytes is deleted before it is reopened.
    """
    try:
        if log_file.stat().st_size > max_bytes:
            log_file.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StartupError(f"failed to rotate log file {log_file}: {e}") from e

    try:
        fh = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError as e:
        raise StartupError(f"failed to open log file {log_file}: {e}") from e
    fh.setFormatter(logging.Formatter(FMT))

    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.addHandler(fh)
    logger.setLevel(logging.DEBUG if debug else logging.ERROR)
    if debug:
        # botocore dumps whole request bodies at DEBUG
        for noisy in ("botocore", "boto3", "urllib3", "paramiko"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
    return fh
