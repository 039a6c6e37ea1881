"""Node bootstrap orchestration.

Runs the setup steps strictly in order:

1. architecture detection
2. privilege check and install method selection
3. kernel prerequisites
4. container runtime and Kubernetes components
5. control-plane join

The first failing step aborts the run with a :class:`~nodesetup.errors.NodeSetupError`.
Architecture, privilege and install method are all checked before anything
is written to the host.
"""
import logging

from ..config import NodeSetupConfig
from ..errors import UnknownInstallMethodError
from ..host import Host
from ..models import Architecture, InstallMethod, SetupResult
from . import kubernetes, runtime
from .arch import detect_arch
from .environment import resolve_environment
from .join import join_controlplane
from .prerequisites import set_prerequisites

logger = logging.getLogger("nodesetup.bootstrap")


def install(
    method: InstallMethod,
    config: NodeSetupConfig,
    version: str,
    arch: Architecture,
    host: Host
) -> None:
    """Install the container runtime and Kubernetes components with ``method``."""
    if method == InstallMethod.APT:
        runtime.apt_install_containerd(host)
        kubernetes.apt_install_kube(version, host)
    elif method == InstallMethod.TAR:
        kubernetes.install_crictl(config, arch, host)
        runtime.install_containerd(config, arch, host)
        kubernetes.install_kube(config, version, arch, host)
    else:
        raise UnknownInstallMethodError(f"unknown install method {method.value}", step="install")


def do_setup(config: NodeSetupConfig, host: Host) -> SetupResult:
    """Provision the host and join it to the cluster.

    Args:
        config: Validated run configuration
        host: Host to act on

    Returns:
        SetupResult: What was installed and whether the node tried to join
    """
    arch = detect_arch(config.arch, host.machine(), host.system())
    method = resolve_environment(config, host)
    version = kubernetes.resolve_kubernetes_version(config)

    result = SetupResult(architecture=arch, install_method=method, kubernetes_version=version)
    result.record_step("environment")

    set_prerequisites(host)
    result.record_step("prerequisites")

    install(method, config, version, arch, host)
    result.record_step("install")

    result.join_state = join_controlplane(config, host)
    result.record_step("join")

    logger.info(
        f"✅ Node setup complete (arch={arch.tag}, method={method.value}, "
        f"kubernetes={version}, join={result.join_state.value})"
    )
    return result
