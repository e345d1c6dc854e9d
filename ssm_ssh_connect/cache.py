# ssm_ssh_connect/cache.py
from __future__ import annotations

import json
import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional

from .errors import CacheWriteError
from .models import ConnectTarget, InstanceIdentity

log = logging.getLogger(__name__)


class IdentityCache:
    """
    One JSON file per (profile, instance name, remote user). Staleness is the
    file mtime only; there is no timestamp inside the record.
    """

    def __init__(self, directory: Path, ttl: timedelta = timedelta(hours=24), clock: Callable[[], float] = time.time):
        self.directory = Path(directory)
        self.ttl = ttl
        self._clock = clock

    def path_for(self, target: ConnectTarget) -> Path:
        return self.directory / f"{target.key}.json"

    def load(self, target: ConnectTarget) -> Optional[InstanceIdentity]:
        path = self.path_for(target)
        try:
            age = self._clock() - path.stat().st_mtime
            if age >= self.ttl.total_seconds():
                log.debug("cache %s expired (age %.0fs)", path, age)
                return None
            data = json.loads(path.read_text(encoding="utf-8"))
            return InstanceIdentity.from_record(data)
        except FileNotFoundError:
            log.debug("cache %s does not exist", path)
        except OSError as e:
            log.debug("cache %s unreadable: %s", path, e)
        except (ValueError, KeyError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            log.debug("cache %s malformed: %s", path, e)
        return None

    def save(self, target: ConnectTarget, identity: InstanceIdentity) -> Path:
        path = self.path_for(target)
        try:
            self.directory.mkdir(mode=0o750, parents=True, exist_ok=True)
            path.write_text(json.dumps(identity.to_record(), separators=(",", ":")), encoding="utf-8")
            path.chmod(0o660)
        except OSError as e:
            raise CacheWriteError(f"failed to write cache file {path}: {e}") from e
        return path
