"""Configuration management for nodesetup.

Configuration is loaded from the following sources, later ones winning:
1. Default values
2. An optional YAML file whose keys are the field names below
3. Environment variables (and a ``.env`` file, if present)
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger("nodesetup.config")

# Version used when KUBERNETES_VERSION is not passed
FALLBACK_KUBERNETES_VERSION = "1.25.5"

# Field name -> environment variable
ENV_VARS: Dict[str, str] = {
    "debug": "DEBUG",
    "install_method": "INSTALL_METHOD",
    "kubernetes_version": "KUBERNETES_VERSION",
    "crictl_version": "CRICTL_VERSION",
    "join_token": "JOIN_TOKEN",
    "join_token_cacert_hash": "JOIN_TOKEN_CACERT_HASH",
    "join_url": "JOIN_URL",
    "arch": "ARCH",
    "containerd_version": "CONTAINERD_VERSION",
    "runc_version": "RUNC_VERSION",
    "cni_plugins_version": "CNI_PLUGINS_VERSION",
    "kube_release_version": "KUBE_RELEASE_VERSION",
    "download_dir": "DOWNLOAD_DIR",
    "download_timeout": "DOWNLOAD_TIMEOUT",
}

REDACTED_FIELDS = ("join_token", "join_token_cacert_hash")


class NodeSetupConfig(BaseModel):
    """Validated settings for one setup run."""

    debug: bool = Field(default=False, description="Trace commands and raise kubeadm verbosity")
    install_method: Optional[str] = Field(
        default=None,
        description="Installation method: 'apt', 'tar', 'rpm' or 'airgap'"
    )
    kubernetes_version: Optional[str] = Field(default=None, description="Kubernetes version to install")
    crictl_version: Optional[str] = Field(default=None, description="crictl version to install (tar method)")
    join_token: Optional[str] = Field(default=None, description="Token to join the control-plane")
    join_token_cacert_hash: Optional[str] = Field(
        default=None,
        description="Token Certificate Authority hash to join the control-plane"
    )
    join_url: Optional[str] = Field(default=None, description="URL to join the control-plane")
    arch: Optional[str] = Field(default=None, description="Architecture override")

    containerd_version: str = Field(default="1.6.15", description="containerd release (tar method)")
    runc_version: str = Field(default="v1.1.4", description="runc release (tar method)")
    cni_plugins_version: str = Field(default="v1.2.0", description="CNI plugins release (tar method)")
    kube_release_version: str = Field(
        default="v0.4.0",
        description="kubernetes/release tag the kubelet unit templates are fetched from"
    )
    download_dir: str = Field(default="/usr/local/bin", description="Where downloaded binaries are placed")
    download_timeout: int = Field(default=60, gt=0, description="HTTP timeout in seconds")

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator(
        "install_method", "kubernetes_version", "crictl_version", "join_token",
        "join_token_cacert_hash", "join_url", "arch",
        mode="before",
    )
    @classmethod
    def empty_as_unset(cls, v: Any) -> Any:
        """Treat empty strings the same as an unset variable."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("debug", mode="before")
    @classmethod
    def parse_debug(cls, v: Any) -> Any:
        """Only 1, true and yes turn debugging on. Other strings leave it off."""
        if isinstance(v, str):
            return v.strip().lower() in ("1", "true", "yes")
        return v

    @field_validator("kubernetes_version")
    @classmethod
    def strip_version_prefix(cls, v: Optional[str]) -> Optional[str]:
        """Accept both ``1.25.5`` and ``v1.25.5``."""
        if v and v[0] in "vV":
            return v[1:]
        return v

    def effective_kubernetes_version(self) -> str:
        """Return the requested Kubernetes version or the tested fallback."""
        return self.kubernetes_version or FALLBACK_KUBERNETES_VERSION

    def kubeadm_verbosity(self) -> str:
        return "-v=8" if self.debug else "-v=4"

    def redacted(self) -> Dict[str, Any]:
        """Return the settings as a dict with join secrets hidden."""
        data = self.model_dump()
        for key in REDACTED_FIELDS:
            if data.get(key):
                data[key] = "[REDACTED]"
        return data

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "NodeSetupConfig":
        """Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``)
            **overrides: Base values that environment variables override

        Raises:
            ConfigurationError: If a value does not validate
        """
        if environ is None:
            environ = os.environ
        data: Dict[str, Any] = dict(overrides)
        for field_name, env_name in ENV_VARS.items():
            if env_name in environ:
                data[field_name] = environ[env_name]
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", step="config") from e


def _load_config_file(path: Path) -> Dict[str, Any]:
    """Load configuration values from a YAML file."""
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {path}: {e}", step="config") from e
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid config file {path}: expected a mapping, got {type(data).__name__}",
            step="config"
        )
    return data


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> NodeSetupConfig:
    """Load the configuration for a run.

    When ``environ`` is not given the process environment is used and a
    ``.env`` file in the working directory is loaded first.
    """
    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    file_data: Dict[str, Any] = {}
    if config_path:
        path = Path(config_path).expanduser().absolute()
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}", step="config")
        file_data = _load_config_file(path)
        logger.debug(f"Loaded config file {path}")

    return NodeSetupConfig.from_env(environ, **file_data)
