"""Joining the node to an existing control-plane with ``kubeadm join``."""
import logging
from typing import List

from ..config import NodeSetupConfig
from ..host import Host
from ..models import JoinCredentials, JoinState

logger = logging.getLogger("nodesetup.join")

STEP = "join"


def credentials_from_config(config: NodeSetupConfig) -> JoinCredentials:
    return JoinCredentials(
        token=config.join_token,
        cacert_hash=config.join_token_cacert_hash,
        url=config.join_url
    )


def build_join_command(credentials: JoinCredentials, verbosity: str) -> List[str]:
    """Build the ``kubeadm join`` command line for complete credentials."""
    return [
        "kubeadm", "join", credentials.url,
        "--token", credentials.token,
        "--discovery-token-ca-cert-hash", credentials.cacert_hash,
        verbosity,
    ]


def join_controlplane(config: NodeSetupConfig, host: Host) -> JoinState:
    """Join the control-plane if, and only if, all join credentials were passed.

    A warning is logged for every missing credential and the join is skipped;
    that is not an error. A failing ``kubeadm join`` is, and is not retried.

    Returns:
        JoinState: JOIN_ATTEMPTED if kubeadm ran, NOT_JOINED otherwise
    """
    credentials = credentials_from_config(config)
    missing = credentials.missing()
    if missing:
        for name in missing:
            logger.warning(f"The {name} has not been passed, the machine will not be part of the cluster")
        return JoinState.NOT_JOINED

    logger.info(f"Joining the control-plane at {credentials.url}")
    host.run(build_join_command(credentials, config.kubeadm_verbosity()), step=STEP)
    logger.info("✅ Node joined the control-plane")
    return JoinState.JOIN_ATTEMPTED
