"""Container runtime (containerd) installation.

Two strategies are available:

- apt: install the distribution package and hold it
- tar: download pinned upstream releases of containerd, runc and the CNI plugins
"""
import logging

from ..config import NodeSetupConfig
from ..host import Host
from ..models import Architecture

logger = logging.getLogger("nodesetup.runtime")

STEP = "runtime"

CONTAINERD_CONFIG_DIR = "/etc/containerd"
CONTAINERD_CONFIG_PATH = "/etc/containerd/config.toml"
CONTAINERD_PREFIX = "/usr/local"
CONTAINERD_UNIT_DIR = "/usr/local/lib/systemd/system"
RUNC_PATH = "/usr/local/sbin/runc"
CNI_BIN_DIR = "/opt/cni/bin"

CONTAINERD_URL = (
    "https://github.com/containerd/containerd/releases/download/"
    "v{version}/containerd-{version}-linux-{arch}.tar.gz"
)
CONTAINERD_UNIT_URL = "https://raw.githubusercontent.com/containerd/containerd/main/containerd.service"
RUNC_URL = "https://github.com/opencontainers/runc/releases/download/{version}/runc.{arch}"
CNI_PLUGINS_URL = (
    "https://github.com/containernetworking/plugins/releases/download/"
    "{version}/cni-plugins-linux-{arch}-{version}.tgz"
)


def use_systemd_cgroup(default_config: str) -> str:
    """Switch the runc cgroup driver to systemd, the driver kubelet expects."""
    return default_config.replace("SystemdCgroup = false", "SystemdCgroup = true")


def write_containerd_config(host: Host) -> None:
    """Write containerd's default config with the systemd cgroup driver enabled."""
    host.make_dirs(CONTAINERD_CONFIG_DIR, step=STEP)
    default_config = host.output(["containerd", "config", "default"], step=STEP)
    host.write_file(CONTAINERD_CONFIG_PATH, use_systemd_cgroup(default_config), step=STEP)


def apt_install_containerd(host: Host) -> None:
    logger.info("📦 Installing containerd with apt")
    host.run(["apt", "update"], step=STEP)
    host.run(["apt", "install", "-y", "containerd"], step=STEP)
    write_containerd_config(host)
    host.run(["systemctl", "restart", "containerd"], step=STEP)
    host.run(["systemctl", "enable", "containerd"], step=STEP)
    host.run(["apt-mark", "hold", "containerd"], step=STEP)
    logger.info("✅ containerd installed")


def install_containerd(config: NodeSetupConfig, arch: Architecture, host: Host) -> None:
    """Install containerd, runc and the CNI plugins from upstream release artifacts.

    Args:
        config: Run configuration holding the pinned versions
        arch: Target architecture used to pick the artifacts
        host: Host to install on
    """
    logger.info(f"📦 Installing containerd {config.containerd_version} from release tarballs")

    host.extract_tarball(
        CONTAINERD_URL.format(version=config.containerd_version, arch=arch.tag),
        CONTAINERD_PREFIX,
        step=STEP
    )
    host.download(CONTAINERD_UNIT_URL, f"{CONTAINERD_UNIT_DIR}/containerd.service", step=STEP, mode=0o644)

    logger.info(f"📦 Installing runc {config.runc_version}")
    host.download(RUNC_URL.format(version=config.runc_version, arch=arch.tag), RUNC_PATH, step=STEP, mode=0o755)

    logger.info(f"📦 Installing CNI plugins {config.cni_plugins_version}")
    host.extract_tarball(
        CNI_PLUGINS_URL.format(version=config.cni_plugins_version, arch=arch.tag),
        CNI_BIN_DIR,
        step=STEP
    )

    write_containerd_config(host)

    host.run(["systemctl", "daemon-reload"], step=STEP)
    host.run(["systemctl", "enable", "--now", "containerd"], step=STEP)
    host.run(["systemctl", "restart", "containerd"], step=STEP)
    logger.info("✅ containerd installed")
