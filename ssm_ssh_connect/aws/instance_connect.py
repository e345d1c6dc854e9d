# ssm_ssh_connect/aws/instance_connect.py
from __future__ import annotations

import logging
from pathlib import Path

import botocore.exceptions
import paramiko

from ..errors import PushError
from ..models import InstanceIdentity

log = logging.getLogger(__name__)

# Key types EC2 Instance Connect accepts.
SUPPORTED_KEY_TYPES = ("ssh-rsa", "ssh-ed25519")


def read_public_key(path: Path) -> str:
    """Return the OpenSSH public key line at ``path`` after checking it parses."""
    path = Path(path).expanduser()
    try:
        text = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise PushError(f"failed to read SSH public key {path}: {e}") from e
    try:
        blob = paramiko.PublicBlob.from_string(text)
    except ValueError as e:
        raise PushError(f"malformed SSH public key {path}: {e}") from e
    if blob.key_type not in SUPPORTED_KEY_TYPES:
        raise PushError(f"unsupported key type {blob.key_type!r} in {path} (need one of {', '.join(SUPPORTED_KEY_TYPES)})")
    return text


def send_public_key(client, identity: InstanceIdentity, os_user: str, public_key: str) -> None:
    # AvailabilityZone is required; the region alone is not enough for this API.
    try:
        resp = client.send_ssh_public_key(
            InstanceId=identity.instance_id,
            InstanceOSUser=os_user,
            SSHPublicKey=public_key,
            AvailabilityZone=identity.availability_zone,
        )
    except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as e:
        raise PushError(f"failed to send SSH public key to {identity.instance_id}: {e}") from e
    if not resp.get("Success", False):
        raise PushError(f"SendSSHPublicKey to {identity.instance_id} was not successful (request {resp.get('RequestId')})")
    log.debug("SendSSHPublicKey ok, request id %s", resp.get("RequestId"))


def push_public_key(client, identity: InstanceIdentity, os_user: str, key_path: Path) -> None:
    public_key = read_public_key(key_path)
    log.info("sending SSH public key %s to %s@%s", key_path, os_user, identity.instance_id)
    send_public_key(client, identity, os_user, public_key)
