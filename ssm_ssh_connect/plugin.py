# ssm_ssh_connect/plugin.py
"""
Locate and run AWS session-manager-plugin, the process that actually speaks the
Session Manager stream protocol. We only hand it a session descriptor and our
stdio.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from typing import Iterable, List, Optional

from .aws.ssm import ssm_endpoint
from .errors import PluginNotFoundError
from .models import SessionRequest, SessionResponse

log = logging.getLogger(__name__)

OPERATION_NAME = "StartSession"


def _compact(payload) -> str:
    return json.dumps(payload, separators=(",", ":"))


def _resolve_candidate(candidate: str) -> Optional[str]:
    if os.path.isabs(candidate):
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
        return None
    return shutil.which(candidate)


def find_plugin(candidates: Iterable[str]) -> str:
    tried: List[str] = []
    for candidate in candidates:
        tried.append(candidate)
        found = _resolve_candidate(candidate)
        if found:
            log.debug("using session-manager-plugin at %s", found)
            return found
    raise PluginNotFoundError(tried)


def plugin_argv(
    plugin_path: str,
    response: SessionResponse,
    region: str,
    profile: str,
    request: SessionRequest,
) -> List[str]:
    # Positional order is fixed by the plugin's ValidateInputAndStartSession.
    return [
        plugin_path,
        _compact(response.to_payload()),  # 1: StartSession response
        region,  # 2: client region
        OPERATION_NAME,  # 3: operation name
        profile,  # 4: profile name
        _compact(request.to_payload()),  # 5: StartSession request parameters
        ssm_endpoint(region),  # 6: SSM endpoint
    ]


def exit_status(returncode: int) -> int:
    # subprocess reports death by signal N as -N; shells report 128 + N
    return 128 - returncode if returncode < 0 else returncode


def run_plugin(argv: List[str]) -> int:
    """
    Run the plugin with this process's stdin/stdout/stderr and wait for it.
    Returns the plugin's exit status (128 + N if killed by signal N);
    OSError from the launch propagates.
    """
    log.info("session-manager-plugin start")
    proc = subprocess.run(argv, stdin=None, stdout=None, stderr=None, check=False)
    if proc.returncode < 0:
        log.error("session-manager-plugin killed by signal %s", -proc.returncode)
    elif proc.returncode != 0:
        log.error("session-manager-plugin exited with status %s", proc.returncode)
    log.info("session-manager-plugin end")
    return exit_status(proc.returncode)
