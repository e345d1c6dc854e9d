# ssm_ssh_connect/lock.py
from __future__ import annotations

import contextlib
import enum
import fcntl
import logging
import os
import threading
import time
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterator, Optional

log = logging.getLogger(__name__)


class LockState(enum.Enum):
    UNLOCKED = "unlocked"
    HELD = "held"


class KeyPushLock:
    """
    Cross-process marker file that lets one invocation per
    (profile, instance, user) push a public key inside the key's validity window.

    UNLOCKED -> HELD on an O_CREAT|O_EXCL create. An existing token whose mtime
    is older than ``timeout`` is removed and the create retried once.
    HELD -> UNLOCKED on release(), which also fires from a daemon timer
    ``timeout`` after acquisition.

    Each token holds a per-acquisition nonce. Stale reclaim and release both
    run under an flock on a sibling ``.guard`` file, and release only removes
    a token whose nonce is still ours.
    """

    def __init__(
        self,
        path: Path,
        timeout: timedelta = timedelta(seconds=50),
        clock: Callable[[], float] = time.time,
        auto_release: bool = True,
    ):
        self.path = Path(path)
        self.guard_path = self.path.with_name(self.path.name + ".guard")
        self.timeout = timeout
        self._clock = clock
        self._auto_release = auto_release
        self._mutex = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._nonce = ""
        self.state = LockState.UNLOCKED
        self.acquired_at: Optional[float] = None

    @contextlib.contextmanager
    def _guard(self) -> Iterator[None]:
        # flock is per open file description and dies with the process.
        fd = os.open(self.guard_path, os.O_CREAT | os.O_RDWR, 0o660)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            os.close(fd)

    def _create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o660)
        except FileExistsError:
            return False
        try:
            os.write(fd, self._nonce.encode("ascii"))
        finally:
            os.close(fd)
        return True

    def owns_token(self) -> bool:
        try:
            return bool(self._nonce) and self.path.read_text(encoding="ascii") == self._nonce
        except (FileNotFoundError, UnicodeDecodeError):
            return False

    def token_age(self) -> Optional[float]:
        try:
            return self._clock() - self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def is_stale(self) -> bool:
        age = self.token_age()
        return age is not None and age > self.timeout.total_seconds()

    def try_acquire(self) -> bool:
        with self._mutex:
            if self.state is LockState.HELD:
                return True
            self._nonce = f"{os.getpid()}:{uuid.uuid4().hex}"
            created = self._create()
            if not created and self.is_stale():
                with self._guard():
                    # another reclaimer may have replaced it while we waited
                    if self.is_stale():
                        log.info("lock %s is stale (age %.0fs); reclaiming", self.path, self.token_age() or 0.0)
                        self.path.unlink(missing_ok=True)
                    created = self._create()
            if not created:
                log.debug("lock %s held by another process", self.path)
                return False
            self.state = LockState.HELD
            self.acquired_at = self._clock()
            if self._auto_release:
                self._timer = threading.Timer(self.timeout.total_seconds(), self.release)
                self._timer.daemon = True
                self._timer.start()
            log.debug("lock %s acquired", self.path)
            return True

    def release(self) -> None:
        with self._mutex:
            if self.state is not LockState.HELD:
                return
            self.state = LockState.UNLOCKED
            self.acquired_at = None
            timer, self._timer = self._timer, None
            try:
                with self._guard():
                    if self.owns_token():
                        self.path.unlink(missing_ok=True)
                        log.debug("lock %s released", self.path)
                    else:
                        log.info("lock %s was reclaimed by another process; leaving it", self.path)
            except OSError as e:
                log.warning("could not remove lock %s: %s", self.path, e)
        if timer is not None and timer is not threading.current_thread():
            timer.cancel()

    def __enter__(self) -> bool:
        return self.try_acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
