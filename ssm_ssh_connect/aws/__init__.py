# ssm_ssh_connect/aws/__init__.py
"""
Thin boto3 wrappers: EC2 lookup, EC2 Instance Connect key push, SSM StartSession.
"""

from .ec2 import resolve_instance
from .instance_connect import push_public_key, read_public_key, send_public_key
from .session import make_session
from .ssm import build_session_request, start_session

__all__ = [
    "resolve_instance",
    "push_public_key",
    "read_public_key",
    "send_public_key",
    "make_session",
    "build_session_request",
    "start_session",
]
