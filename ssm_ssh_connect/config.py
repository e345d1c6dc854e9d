# ssm_ssh_connect/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .models import ConnectTarget

APP_DIR_NAME = ".ssm-ssh-connect"
DEBUG_ENV = "SSM_SSH_CONNECT_DEBUG"
HOME_ENV = "SSM_SSH_CONNECT_HOME"
PUBLIC_KEY_ENV = "SSM_SSH_CONNECT_PUBLIC_KEY"

PLUGIN_CANDIDATES: Tuple[str, ...] = (
    "session-manager-plugin",  # $PATH
    "/usr/local/bin/session-manager-plugin",  # default installer
    "/usr/bin/session-manager-plugin",  # linux packages
    "/opt/homebrew/bin/session-manager-plugin",  # macos (homebrew)
)


@dataclass(frozen=True)
class Settings:
    app_home: Path = Path.home() / APP_DIR_NAME
    public_key_path: Path = Path.home() / ".ssh" / "id_rsa.pub"
    cache_ttl: timedelta = timedelta(hours=24)
    # EC2 Instance Connect keys live 60s; keep 10s of margin.
    lock_timeout: timedelta = timedelta(seconds=50)
    log_file_name: str = "ssm-ssh-connect.log"
    log_max_bytes: int = 1024 * 1024
    debug: bool = False
    plugin_candidates: Tuple[str, ...] = PLUGIN_CANDIDATES

    @property
    def log_file(self) -> Path:
        return self.app_home / self.log_file_name

    def cache_path(self, target: ConnectTarget) -> Path:
        return self.app_home / f"{target.key}.json"

    def lock_path(self, target: ConnectTarget) -> Path:
        return self.app_home / f"{target.key}.lock"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        home = Path(env.get("HOME") or Path.home())
        app_home = Path(env[HOME_ENV]).expanduser() if env.get(HOME_ENV) else home / APP_DIR_NAME
        pub = Path(env[PUBLIC_KEY_ENV]).expanduser() if env.get(PUBLIC_KEY_ENV) else home / ".ssh" / "id_rsa.pub"
        return cls(
            app_home=app_home,
            public_key_path=pub,
            debug=env.get(DEBUG_ENV) == "1",
        )
