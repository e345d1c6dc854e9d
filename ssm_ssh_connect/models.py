# ssm_ssh_connect/models.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


def region_from_az(availability_zone: str) -> str:
    """'us-east-1a' -> 'us-east-1'. The region is never looked up separately."""
    if not availability_zone:
        raise ValueError("availability zone is empty")
    return availability_zone[:-1]


@dataclass(frozen=True)
class ConnectTarget:
    """The three ProxyCommand arguments; also the cache/lock file key."""

    profile: str
    instance_name: str
    remote_user: str

    @property
    def key(self) -> str:
        return f"{self.profile}-{self.instance_name}-{self.remote_user}"


@dataclass(frozen=True)
class InstanceIdentity:
    instance_id: str
    availability_zone: str
    region: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "region", region_from_az(self.availability_zone))

    def to_record(self) -> Dict[str, str]:
        return {
            "region": self.region,
            "instance_id": self.instance_id,
            "instance_az": self.availability_zone,
        }

    @classmethod
    def from_record(cls, data: Dict[str, str]) -> "InstanceIdentity":
        ident = cls(instance_id=str(data["instance_id"]), availability_zone=str(data["instance_az"]))
        stored = data.get("region")
        if stored is not None and stored != ident.region:
            raise ValueError(f"region {stored!r} does not match availability zone {ident.availability_zone!r}")
        if not ident.instance_id:
            raise ValueError("instance_id is empty")
        return ident


# Key order matters: both structures are serialized verbatim into the plugin argv.
@dataclass(frozen=True)
class SessionRequest:
    target: str
    document_name: str = "AWS-StartSSHSession"
    parameters: Tuple[Tuple[str, Tuple[str, ...]], ...] = (("portNumber", ("22",)),)

    def parameters_dict(self) -> Dict[str, List[str]]:
        return {name: list(values) for name, values in self.parameters}

    def to_payload(self) -> Dict[str, object]:
        return {
            "Target": self.target,
            "DocumentName": self.document_name,
            "Parameters": self.parameters_dict(),
        }


@dataclass(frozen=True)
class SessionResponse:
    session_id: str
    stream_url: str
    token_value: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "SessionId": self.session_id,
            "StreamUrl": self.stream_url,
            "TokenValue": self.token_value,
        }


class Outcome(enum.Enum):
    SUCCESS = "success"
    SOFT_FAILURE = "soft-failure"  # logged, pipeline continues
    HARD_FAILURE = "hard-failure"  # pipeline aborts


@dataclass(frozen=True)
class StepResult:
    step: str
    outcome: Outcome
    detail: str = ""
    skipped: bool = False

    @property
    def aborts(self) -> bool:
        return self.outcome is Outcome.HARD_FAILURE


@dataclass
class ConnectReport:
    steps: List[StepResult] = field(default_factory=list)
    identity: Optional[InstanceIdentity] = None
    exit_code: int = 0

    def add(self, result: StepResult) -> StepResult:
        self.steps.append(result)
        return result

    def step(self, name: str) -> Optional[StepResult]:
        for s in self.steps:
            if s.step == name:
                return s
        return None
