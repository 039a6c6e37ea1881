"""Data models for the node setup run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class InstallMethod(str, Enum):
    """Ways the container runtime and Kubernetes binaries can be installed."""
    APT = 'apt'
    TAR = 'tar'
    RPM = 'rpm'
    AIRGAP = 'airgap'


# Documented methods that have no installer yet
UNSUPPORTED_METHODS = (InstallMethod.RPM, InstallMethod.AIRGAP)


class JoinState(str, Enum):
    """Whether the node tried to join the control-plane."""
    NOT_JOINED = 'not_joined'
    JOIN_ATTEMPTED = 'join_attempted'


@dataclass(frozen=True)
class Architecture:
    """Normalized host architecture."""
    tag: str
    suffix: str

    def __str__(self) -> str:
        return self.tag


@dataclass
class JoinCredentials:
    """Token, CA-cert hash and URL needed by ``kubeadm join``."""
    token: Optional[str] = None
    cacert_hash: Optional[str] = None
    url: Optional[str] = None

    def missing(self) -> List[str]:
        """Return the descriptions of the credentials that were not passed."""
        missing = []
        if not self.token:
            missing.append('join Token')
        if not self.cacert_hash:
            missing.append('join Token Certificate Authority hash')
        if not self.url:
            missing.append('join url')
        return missing


@dataclass
class SetupResult:
    """Summary of a completed setup run."""
    architecture: Architecture
    install_method: InstallMethod
    kubernetes_version: str
    join_state: JoinState = JoinState.NOT_JOINED
    steps: List[str] = field(default_factory=list)

    def record_step(self, step: str) -> None:
        """Record a step that finished successfully."""
        self.steps.append(step)
