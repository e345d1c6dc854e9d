import base64
import logging
import os
import struct
from pathlib import Path

import boto3
import pytest
from botocore.stub import Stubber

from ssm_ssh_connect.config import Settings
from ssm_ssh_connect.models import ConnectTarget


def _ed25519_line(comment: str = "me@laptop") -> str:
    kind = b"ssh-ed25519"
    blob = struct.pack(">I", len(kind)) + kind + struct.pack(">I", 32) + bytes(range(32))
    return f"ssh-ed25519 {base64.b64encode(blob).decode()} {comment}\n"


def make_client(service: str, region: str = "us-east-1"):
    return boto3.client(
        service,
        region_name=region,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class FakeSession:
    """Stands in for boto3.Session; hands out pre-stubbed clients."""

    def __init__(self, clients):
        self.clients = clients
        self.calls = []

    def client(self, service, region_name=None):
        self.calls.append((service, region_name))
        return self.clients[service]

    def services(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def public_key_line():
    return _ed25519_line()


@pytest.fixture
def public_key_file(tmp_path, public_key_line):
    p = tmp_path / "id_ed25519.pub"
    p.write_text(public_key_line)
    return p


@pytest.fixture
def plugin_exe(tmp_path):
    p = tmp_path / "bin" / "session-manager-plugin"
    p.parent.mkdir()
    p.write_text("#!/bin/sh\nexit 0\n")
    p.chmod(0o755)
    return p


@pytest.fixture
def settings(tmp_path, public_key_file, plugin_exe):
    app_home = tmp_path / "app"
    app_home.mkdir()
    return Settings(
        app_home=app_home,
        public_key_path=public_key_file,
        plugin_candidates=(str(plugin_exe),),
    )


@pytest.fixture
def target():
    return ConnectTarget("dev", "web-1", "ec2-user")


@pytest.fixture
def stubbed():
    """ec2 / ec2-instance-connect / ssm clients, each with an active Stubber."""
    clients = {name: make_client(name) for name in ("ec2", "ec2-instance-connect", "ssm")}
    stubbers = {name: Stubber(c) for name, c in clients.items()}
    for s in stubbers.values():
        s.activate()
    yield clients, stubbers
    for s in stubbers.values():
        s.deactivate()


@pytest.fixture
def fake_session(stubbed):
    clients, _ = stubbed
    return FakeSession(clients)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)


def age_file(path: Path, seconds: float) -> None:
    import time

    t = time.time() - seconds
    os.utime(path, (t, t))


def describe_response(*instances):
    return {
        "Reservations": [
            {
                "Instances": [
                    {
                        "InstanceId": iid,
                        "Placement": {"AvailabilityZone": az},
                        "State": {"Name": "running"},
                        "Tags": [{"Key": "Name", "Value": "web-1"}],
                    }
                    for iid, az in instances
                ]
            }
        ]
        if instances
        else []
    }
