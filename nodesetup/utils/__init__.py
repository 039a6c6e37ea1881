"""Utility functions and helpers for nodesetup."""
import os
from typing import Any, Iterable, List, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..errors import ConfigurationError

# Command-line flags whose value must never reach the logs
REDACT_FLAGS = ("--token", "--discovery-token-ca-cert-hash", "--certificate-key")

REDACTED = "[REDACTED]"


def redact_command(args: Sequence[str], flags: Iterable[str] = REDACT_FLAGS) -> List[str]:
    """Return a copy of ``args`` with the values of sensitive flags redacted.

    Both ``--flag value`` and ``--flag=value`` forms are handled.

    Args:
        args: Command and arguments as passed to subprocess
        flags: Flags whose values are secrets

    Returns:
        Command safe to log
    """
    flags = tuple(flags)
    redacted: List[str] = []
    hide_next = False
    for arg in args:
        if hide_next:
            redacted.append(REDACTED)
            hide_next = False
            continue
        name, sep, _ = str(arg).partition("=")
        if name in flags:
            if sep:
                redacted.append(f"{name}={REDACTED}")
            else:
                redacted.append(str(arg))
                hide_next = True
            continue
        redacted.append(str(arg))
    return redacted


def get_template_path() -> str:
    """Get the absolute path to the templates directory."""
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'templates')


def render_template(name: str, **context: Any) -> str:
    """Render one of the packaged Jinja2 templates.

    Raises:
        ConfigurationError: If the template is missing or cannot be rendered
    """
    env = Environment(
        loader=FileSystemLoader(get_template_path()),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined
    )
    try:
        return env.get_template(name).render(**context)
    except TemplateError as e:
        raise ConfigurationError(f"Failed to render template {name}: {e}") from e
