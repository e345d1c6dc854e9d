# ssm_ssh_connect/aws/session.py
from __future__ import annotations

import logging

import boto3
import botocore.exceptions

from ..errors import StartupError

log = logging.getLogger(__name__)


def make_session(profile: str) -> boto3.Session:
    try:
        session = boto3.Session(profile_name=profile)
    except botocore.exceptions.ProfileNotFound as e:
        raise StartupError(f"unable to load AWS config for profile {profile!r}: {e}") from e
    log.debug("AWS session for profile %s (default region %s)", profile, session.region_name)
    return session
