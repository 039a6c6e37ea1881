"""Host architecture detection."""
import logging
from typing import Optional

from ..errors import UnsupportedArchitectureError
from ..models import Architecture

logger = logging.getLogger("nodesetup.arch")

STEP = "arch"

# Machine identifier -> architecture tag used in download URLs
ARCH_ALIASES = {
    "amd64": "amd64",
    "x86_64": "amd64",
    "arm64": "arm64",
}


def detect_arch(override: Optional[str], machine: str, system: str = "Linux") -> Architecture:
    """Map the host machine identifier to a supported architecture.

    Args:
        override: Value of ``ARCH``; wins over the detected machine when set
        machine: Identifier reported by the host (``uname -m``)
        system: Kernel name (``uname -s``), used for the install suffix

    Returns:
        Architecture: Normalized tag and ``<system>-<tag>`` suffix

    Raises:
        UnsupportedArchitectureError: If the identifier is not supported
    """
    identifier = override or machine
    tag = ARCH_ALIASES.get(identifier)
    if tag is None:
        raise UnsupportedArchitectureError(f"unsupported architecture {identifier}", step=STEP)

    architecture = Architecture(tag=tag, suffix=f"{system.lower()}-{tag}")
    logger.debug(f"Detected architecture {identifier} -> {architecture.suffix}")
    return architecture
