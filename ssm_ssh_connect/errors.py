# ssm_ssh_connect/errors.py
from __future__ import annotations

from typing import Sequence


class SsmSshConnectError(RuntimeError):
    """Base class for every failure the connect pipeline knows about."""


class StartupError(SsmSshConnectError):
    pass


class InstanceNotFoundError(SsmSshConnectError):
    def __init__(self, instance_name: str):
        super().__init__(f"instance {instance_name!r} not found or not in running state")
        self.instance_name = instance_name


class AmbiguousInstanceError(SsmSshConnectError):
    def __init__(self, instance_name: str, instance_ids: Sequence[str]):
        ids = ", ".join(instance_ids)
        super().__init__(f"instance name {instance_name!r} matches several running instances: {ids}")
        self.instance_name = instance_name
        self.instance_ids = tuple(instance_ids)


class ResolverError(SsmSshConnectError):
    """DescribeInstances itself failed (auth, throttling, network)."""


class CacheWriteError(SsmSshConnectError):
    pass


class PushError(SsmSshConnectError):
    pass


class BootstrapError(SsmSshConnectError):
    pass


class PluginNotFoundError(SsmSshConnectError):
    def __init__(self, candidates: Sequence[str]):
        super().__init__("session-manager-plugin binary not found (looked in: " + ", ".join(candidates) + ")")
        self.candidates = tuple(candidates)
