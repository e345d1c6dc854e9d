# ssm_ssh_connect/orchestrators/connect.py
from __future__ import annotations

import logging
from typing import Optional

import botocore.exceptions

from ..aws.ec2 import resolve_instance
from ..aws.instance_connect import push_public_key
from ..aws.ssm import build_session_request, start_session
from ..cache import IdentityCache
from ..config import Settings
from ..errors import CacheWriteError, PluginNotFoundError, PushError, SsmSshConnectError
from ..lock import KeyPushLock
from ..models import ConnectReport, ConnectTarget, InstanceIdentity, Outcome, StepResult
from ..plugin import find_plugin, plugin_argv, run_plugin

log = logging.getLogger(__name__)

_AWS_ERRORS = (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError)


def _fail(report: ConnectReport, step: str, err: Exception) -> StepResult:
    log.error("%s failed: %s", step, err)
    log.debug("%s failure detail", step, exc_info=err)
    report.exit_code = 1
    return report.add(StepResult(step, Outcome.HARD_FAILURE, str(err)))


def _soft(report: ConnectReport, step: str, err: Exception) -> StepResult:
    log.error("%s failed (continuing): %s", step, err)
    return report.add(StepResult(step, Outcome.SOFT_FAILURE, str(err)))


def resolve_identity(report: ConnectReport, target: ConnectTarget, cache: IdentityCache, session) -> Optional[InstanceIdentity]:
    identity = cache.load(target)
    if identity is not None:
        log.info("loaded %s from cache: %s", target.instance_name, identity)
        report.add(StepResult("resolve", Outcome.SUCCESS, "cache"))
        return identity

    log.info("instance details not found in cache, fetching from AWS")
    try:
        identity = resolve_instance(session.client("ec2"), target.instance_name)
    except (SsmSshConnectError, *_AWS_ERRORS) as e:
        _fail(report, "resolve", e)
        return None
    report.add(StepResult("resolve", Outcome.SUCCESS, "ec2"))

    try:
        path = cache.save(target, identity)
        log.info("saved instance details to %s", path)
        report.add(StepResult("cache-save", Outcome.SUCCESS))
    except CacheWriteError as e:
        _soft(report, "cache-save", e)
    return identity


def push_key_once(
    report: ConnectReport,
    target: ConnectTarget,
    identity: InstanceIdentity,
    settings: Settings,
    session,
) -> StepResult:
    lock = KeyPushLock(settings.lock_path(target), timeout=settings.lock_timeout)
    log.info("checking lock file %s", lock.path)
    try:
        acquired = lock.try_acquire()
    except OSError as e:
        return _soft(report, "key-push", e)
    if not acquired:
        log.info("another process pushed a key for %s recently; skipping", target.key)
        return report.add(StepResult("key-push", Outcome.SUCCESS, "lock held elsewhere", skipped=True))

    try:
        client = session.client("ec2-instance-connect", region_name=identity.region)
        push_public_key(client, identity, target.remote_user, settings.public_key_path)
    except (PushError, *_AWS_ERRORS) as e:
        return _soft(report, "key-push", e)
    finally:
        lock.release()
    log.info("SSH public key sent")
    return report.add(StepResult("key-push", Outcome.SUCCESS))


def open_session(
    report: ConnectReport,
    target: ConnectTarget,
    identity: InstanceIdentity,
    settings: Settings,
    session,
) -> None:
    request = build_session_request(identity)
    try:
        response = start_session(session.client("ssm", region_name=identity.region), request)
    except (SsmSshConnectError, *_AWS_ERRORS) as e:
        _fail(report, "session-start", e)
        return
    report.add(StepResult("session-start", Outcome.SUCCESS, response.session_id))

    try:
        path = find_plugin(settings.plugin_candidates)
    except PluginNotFoundError as e:
        _fail(report, "plugin", e)
        return

    argv = plugin_argv(path, response, identity.region, target.profile, request)
    try:
        rc = run_plugin(argv)
    except OSError as e:
        _fail(report, "plugin", e)
        return

    report.exit_code = rc
    if rc != 0:
        report.add(StepResult("plugin", Outcome.SOFT_FAILURE, f"exit status {rc}"))
    else:
        report.add(StepResult("plugin", Outcome.SUCCESS))


def run_connect(target: ConnectTarget, settings: Settings, session) -> ConnectReport:
    """
    cache/EC2 lookup -> cache write -> lock -> key push -> SSM session -> plugin.

    Strictly sequential. Hard failures stop the pipeline with exit_code 1;
    soft failures are logged and the next stage runs. On success exit_code is
    the plugin's exit status.
    """
    report = ConnectReport()
    cache = IdentityCache(settings.app_home, ttl=settings.cache_ttl)

    identity = resolve_identity(report, target, cache, session)
    if identity is None:
        return report
    report.identity = identity

    push_key_once(report, target, identity, settings, session)

    log.info("starting SSM session")
    open_session(report, target, identity, settings, session)
    log.info("session completed (exit %s)", report.exit_code)
    return report
