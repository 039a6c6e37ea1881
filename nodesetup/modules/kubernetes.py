"""Kubernetes node components: kubelet, kubeadm, kubectl and crictl."""
import logging
from typing import List

from ..config import FALLBACK_KUBERNETES_VERSION, NodeSetupConfig
from ..host import Host
from ..models import Architecture
from ..utils import render_template

logger = logging.getLogger("nodesetup.kubernetes")

STEP = "kubernetes"
CRICTL_STEP = "crictl"

COMPONENTS = ("kubelet", "kubeadm", "kubectl")
PREREQUISITE_PACKAGES = ("apt-transport-https", "ca-certificates", "socat", "conntrack")

# apt repository
APT_KEY_URL = "https://packages.cloud.google.com/apt/doc/apt-key.gpg"
APT_KEYRING_PATH = "/usr/share/keyrings/kubernetes-archive-keyring.gpg"
APT_REPOSITORY = "https://apt.kubernetes.io/"
APT_DISTRIBUTION = "kubernetes-xenial"
APT_SOURCES_PATH = "/etc/apt/sources.list.d/kubernetes.list"
APT_PACKAGE_REVISION = "00"

# Release binaries
RELEASE_BINARY_URL = "https://storage.googleapis.com/kubernetes-release/release/v{version}/bin/linux/{arch}/{binary}"
KUBELET_UNIT_URL = (
    "https://raw.githubusercontent.com/kubernetes/release/{release}"
    "/cmd/kubepkg/templates/latest/deb/kubelet/lib/systemd/system/kubelet.service"
)
KUBEADM_DROPIN_URL = (
    "https://raw.githubusercontent.com/kubernetes/release/{release}"
    "/cmd/kubepkg/templates/latest/deb/kubeadm/10-kubeadm.conf"
)
KUBELET_UNIT_PATH = "/etc/systemd/system/kubelet.service"
KUBELET_DROPIN_DIR = "/etc/systemd/system/kubelet.service.d"
KUBEADM_DROPIN_PATH = f"{KUBELET_DROPIN_DIR}/10-kubeadm.conf"
UNIT_BINARY_DIR = "/usr/bin"

CRICTL_URL = (
    "https://github.com/kubernetes-sigs/cri-tools/releases/download/"
    "{version}/crictl-{version}-linux-{arch}.tar.gz"
)


def resolve_kubernetes_version(config: NodeSetupConfig) -> str:
    """Return the Kubernetes version to install.

    Without ``KUBERNETES_VERSION`` a fixed, tested version is used rather than
    the latest release.
    """
    if config.kubernetes_version:
        return config.kubernetes_version
    logger.warning(
        f"===== The kubernetes version has not been passed, the tested version "
        f"{FALLBACK_KUBERNETES_VERSION} will be used instead of the latest ====="
    )
    return config.effective_kubernetes_version()


def apt_package_specs(version: str) -> List[str]:
    """Return ``apt install`` arguments pinning each component to ``version``."""
    return [f"{name}={version}-{APT_PACKAGE_REVISION}" for name in COMPONENTS]


def render_sources_list() -> str:
    return render_template(
        "kubernetes.list.j2",
        keyring=APT_KEYRING_PATH,
        repository=APT_REPOSITORY,
        distribution=APT_DISTRIBUTION
    )


def install_prerequisite_packages(host: Host) -> None:
    logger.info("Update the apt package index and install packages needed to use the Kubernetes apt repository")
    host.run(["apt", "install", "-y", *PREREQUISITE_PACKAGES], step=STEP)


def apt_install_kube(version: str, host: Host) -> None:
    """Install and hold kubelet, kubeadm and kubectl from the Kubernetes apt repository."""
    install_prerequisite_packages(host)

    logger.info("Download the Google Cloud public signing key")
    host.download(APT_KEY_URL, APT_KEYRING_PATH, step=STEP, mode=0o644)

    logger.info("Add the Kubernetes apt repository")
    host.write_file(APT_SOURCES_PATH, render_sources_list(), step=STEP)

    logger.info(f"📦 Installing kubernetes components {version}")
    host.run(["apt", "update"], step=STEP)
    host.run(
        ["apt", "install", "-y", *apt_package_specs(version),
         "--allow-downgrades", "--allow-change-held-packages"],
        step=STEP
    )
    host.run(["apt-mark", "hold", *COMPONENTS], step=STEP)
    logger.info("✅ Kubernetes components installed")


def adapt_unit(template: bytes, download_dir: str) -> str:
    """Point a packaged unit template at binaries in ``download_dir``."""
    return template.decode().replace(UNIT_BINARY_DIR, download_dir.rstrip("/"))


def install_kube(config: NodeSetupConfig, version: str, arch: Architecture, host: Host) -> None:
    """Install kubelet, kubeadm and kubectl from release binaries.

    Args:
        config: Run configuration (download directory, unit template release)
        version: Kubernetes version without the leading ``v``
        arch: Target architecture
        host: Host to install on
    """
    if host.which("apt"):
        install_prerequisite_packages(host)
    else:
        logger.warning(f"apt not found, make sure {', '.join(PREREQUISITE_PACKAGES)} are installed")

    download_dir = config.download_dir.rstrip("/")
    logger.info(f"📦 Downloading kubernetes components {version} into {download_dir}")
    for binary in ("kubeadm", "kubelet", "kubectl"):
        host.download(
            RELEASE_BINARY_URL.format(version=version, arch=arch.tag, binary=binary),
            f"{download_dir}/{binary}",
            step=STEP,
            mode=0o755
        )

    release = config.kube_release_version
    unit = host.fetch(KUBELET_UNIT_URL.format(release=release), step=STEP)
    host.write_file(KUBELET_UNIT_PATH, adapt_unit(unit, download_dir), step=STEP)

    host.make_dirs(KUBELET_DROPIN_DIR, step=STEP)
    dropin = host.fetch(KUBEADM_DROPIN_URL.format(release=release), step=STEP)
    host.write_file(KUBEADM_DROPIN_PATH, adapt_unit(dropin, download_dir), step=STEP)

    host.run(["systemctl", "enable", "--now", "kubelet"], step=STEP)
    logger.info("✅ Kubernetes components installed")


def install_crictl(config: NodeSetupConfig, arch: Architecture, host: Host) -> bool:
    """Install crictl when ``CRICTL_VERSION`` is set.

    Returns:
        bool: True if crictl was installed, False if the step was skipped
    """
    logger.info("installing crictl")
    if not config.crictl_version:
        logger.warning("===== The crictl version has not been passed, skipping crictl =====")
        return False

    host.extract_tarball(
        CRICTL_URL.format(version=config.crictl_version, arch=arch.tag),
        config.download_dir,
        step=CRICTL_STEP
    )
    logger.info(f"✅ crictl {config.crictl_version} installed")
    return True
