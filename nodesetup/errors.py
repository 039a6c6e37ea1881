"""Exceptions raised while setting up a node.

Every error carries the name of the step it came from so the CLI can report
where the run stopped.
"""

from typing import Optional


class NodeSetupError(Exception):
    """Base class for all node setup failures."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step

    def __str__(self) -> str:
        message = super().__str__()
        if self.step:
            return f"[{self.step}] {message}"
        return message


class ConfigurationError(NodeSetupError):
    """Raised when the configuration cannot be loaded or validated."""


class PreconditionError(NodeSetupError):
    """Raised when the host or the configuration makes the install impossible."""


class UnsupportedArchitectureError(PreconditionError):
    """Raised for machine identifiers with no known install suffix."""


class PrivilegeError(PreconditionError):
    """Raised when the process is not running as root."""


class UnsupportedInstallMethodError(PreconditionError):
    """Raised for install methods that are documented but not implemented."""


class UnknownInstallMethodError(PreconditionError):
    """Raised when no install method is set or the value is not recognised."""


class StepFailedError(NodeSetupError):
    """Raised when a command, download or file write fails inside a step."""

    def __init__(self, message: str, step: Optional[str] = None, returncode: Optional[int] = None):
        super().__init__(message, step)
        self.returncode = returncode
