"""Kernel modules and sysctl parameters required by Kubernetes networking."""
import logging
from typing import Dict, Tuple

from ..host import Host
from ..utils import render_template

logger = logging.getLogger("nodesetup.prerequisites")

STEP = "prerequisites"

MODULES_LOAD_PATH = "/etc/modules-load.d/k8s.conf"
SYSCTL_PATH = "/etc/sysctl.d/k8s.conf"

KERNEL_MODULES: Tuple[str, ...] = ("overlay", "br_netfilter")

# Persist across reboots
SYSCTL_PARAMS: Dict[str, str] = {
    "net.bridge.bridge-nf-call-iptables": "1",
    "net.bridge.bridge-nf-call-ip6tables": "1",
    "net.ipv4.ip_forward": "1",
}


def render_modules_conf() -> str:
    return render_template("k8s-modules.conf.j2", modules=KERNEL_MODULES)


def render_sysctl_conf() -> str:
    return render_template("k8s-sysctl.conf.j2", params=SYSCTL_PARAMS)


def set_prerequisites(host: Host) -> None:
    """Enable IPv4 forwarding and let iptables see bridged traffic.

    Safe to run repeatedly: the files are rewritten with the same content and
    loading an already loaded module is a no-op.
    """
    logger.info("Set node prerequisites: forwarding IPv4 and letting iptables see bridged traffic")

    host.write_file(MODULES_LOAD_PATH, render_modules_conf(), step=STEP)
    for module in KERNEL_MODULES:
        host.run(["modprobe", module], step=STEP)

    host.write_file(SYSCTL_PATH, render_sysctl_conf(), step=STEP)

    # Apply sysctl params without reboot
    host.run(["sysctl", "--system"], step=STEP)
