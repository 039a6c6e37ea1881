import logging
import sys
from typing import Optional, Tuple

import typer
import yaml

from nodesetup.config import NodeSetupConfig, load_config
from nodesetup.errors import NodeSetupError, PrivilegeError
from nodesetup.host import Host
from nodesetup.logging import setup_logger
from nodesetup.modules import detect_arch, do_setup, join_controlplane, set_prerequisites

app = typer.Typer(
    help="Provision a Linux host and join it to a Kubernetes cluster.\n\n"
         "Settings are read from environment variables (INSTALL_METHOD, KUBERNETES_VERSION, "
         "CRICTL_VERSION, JOIN_TOKEN, JOIN_TOKEN_CACERT_HASH, JOIN_URL, ARCH, DEBUG).",
    no_args_is_help=False,
)

logger = logging.getLogger("nodesetup")


class Options:
    """Global options shared by all commands."""

    def __init__(self, debug: bool = False, dry_run: bool = False, config_path: Optional[str] = None):
        self.debug = debug
        self.dry_run = dry_run
        self.config_path = config_path


def setup_logging(debug_mode: bool = False) -> None:
    """Configure logging based on debug mode."""
    setup_logger("nodesetup", logging.DEBUG if debug_mode else logging.INFO)
    if debug_mode:
        logger.debug("Debug mode enabled")


def load(ctx: typer.Context) -> Tuple[NodeSetupConfig, Host]:
    """Load the configuration and build the host for a command."""
    options: Options = ctx.obj
    config = load_config(options.config_path)
    if options.debug and not config.debug:
        config = config.model_copy(update={"debug": True})
    if config.debug:
        setup_logging(True)
    host = Host(dry_run=options.dry_run, timeout=config.download_timeout)
    return config, host


def fail(error: NodeSetupError) -> None:
    """Log a fatal error and exit with status 1."""
    logger.error(str(error))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Traceback:", exc_info=error)
    raise typer.Exit(code=1)


def require_root(host: Host, step: str) -> None:
    if not host.is_root():
        raise PrivilegeError("You need to be root to perform this install", step=step)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging and command tracing"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands and writes without executing them"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML file with default settings"),
):
    """Node setup: run the full setup when no command is given."""
    ctx.obj = Options(debug=debug, dry_run=dry_run, config_path=config_path)
    setup_logging(debug)
    if ctx.invoked_subcommand is None:
        setup(ctx)


@app.command("setup")
def setup(ctx: typer.Context):
    """Install containerd and Kubernetes, then join the control-plane."""
    try:
        config, host = load(ctx)
        do_setup(config, host)
    except NodeSetupError as e:
        fail(e)


@app.command("arch")
def arch(ctx: typer.Context):
    """Print the detected architecture and install suffix."""
    try:
        config, host = load(ctx)
        architecture = detect_arch(config.arch, host.machine(), host.system())
    except NodeSetupError as e:
        fail(e)
    typer.echo(f"{architecture.tag} {architecture.suffix}")


@app.command("prerequisites")
def prerequisites(ctx: typer.Context):
    """Only configure kernel modules and sysctl parameters."""
    try:
        config, host = load(ctx)
        require_root(host, "prerequisites")
        set_prerequisites(host)
    except NodeSetupError as e:
        fail(e)


@app.command("join")
def join(ctx: typer.Context):
    """Only run kubeadm join with the JOIN_* settings."""
    try:
        config, host = load(ctx)
        require_root(host, "join")
        join_controlplane(config, host)
    except NodeSetupError as e:
        fail(e)


@app.command("show-config")
def show_config(ctx: typer.Context):
    """Print the resolved settings with join secrets redacted."""
    try:
        config, _ = load(ctx)
    except NodeSetupError as e:
        fail(e)
    typer.echo(yaml.safe_dump(config.redacted(), default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    sys.exit(app())
