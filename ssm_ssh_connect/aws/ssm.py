# ssm_ssh_connect/aws/ssm.py
from __future__ import annotations

import logging

import botocore.exceptions

from ..errors import BootstrapError
from ..models import InstanceIdentity, SessionRequest, SessionResponse

log = logging.getLogger(__name__)


def build_session_request(identity: InstanceIdentity) -> SessionRequest:
    return SessionRequest(target=identity.instance_id)


def ssm_endpoint(region: str) -> str:
    return f"https://ssm.{region}.amazonaws.com"


def start_session(ssm, request: SessionRequest) -> SessionResponse:
    try:
        out = ssm.start_session(
            Target=request.target,
            DocumentName=request.document_name,
            Parameters=request.parameters_dict(),
        )
    except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as e:
        raise BootstrapError(f"failed to start SSM session on {request.target}: {e}") from e
    resp = SessionResponse(
        session_id=out.get("SessionId") or "",
        stream_url=out.get("StreamUrl") or "",
        token_value=out.get("TokenValue") or "",
    )
    log.info("SSM session %s started on %s", resp.session_id, request.target)
    return resp
