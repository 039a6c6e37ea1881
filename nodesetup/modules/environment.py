"""Privilege check and install method selection."""
import logging

from ..config import NodeSetupConfig
from ..errors import PrivilegeError, UnknownInstallMethodError, UnsupportedInstallMethodError
from ..host import Host
from ..models import UNSUPPORTED_METHODS, InstallMethod

logger = logging.getLogger("nodesetup.environment")

STEP = "environment"


def select_install_method(config: NodeSetupConfig, host: Host) -> InstallMethod:
    """Pick the install method: an explicit ``INSTALL_METHOD`` wins, otherwise apt if available.

    Raises:
        UnsupportedInstallMethodError: For documented methods without an installer
        UnknownInstallMethodError: If no method is set or the value is not recognised
    """
    requested = config.install_method
    if requested is None and host.which("apt"):
        logger.debug("apt found on the host, using the 'apt' install method")
        requested = InstallMethod.APT.value

    try:
        method = InstallMethod(requested)
    except ValueError:
        raise UnknownInstallMethodError(f"unknown install method {requested}", step=STEP) from None

    if method in UNSUPPORTED_METHODS:
        raise UnsupportedInstallMethodError(
            f"currently unsupported install method {method.value}",
            step=STEP
        )
    return method


def resolve_environment(config: NodeSetupConfig, host: Host) -> InstallMethod:
    """Make sure the install can proceed on this host.

    Nothing is written to the host before this returns.

    Returns:
        InstallMethod: The method the install step will use

    Raises:
        PrivilegeError: If not running as root
    """
    if not host.is_root():
        raise PrivilegeError("You need to be root to perform this install", step=STEP)

    method = select_install_method(config, host)
    logger.info(f"Using install method '{method.value}'")
    return method
