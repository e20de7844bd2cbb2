"""crashpadkiller - command line entry point."""

import functools
import logging
import signal
from pathlib import Path

import click

from crashpadkiller import service
from crashpadkiller.config import CONFIG_PATH_ENV, load_targets, resolve_config_path
from crashpadkiller.engine import TerminationEngine
from crashpadkiller.errors import ConfigError, ServiceError, TickError
from crashpadkiller.logging_config import add_event_log_handler, setup_logging
from crashpadkiller.loop import DEFAULT_INTERVAL, ExecutionLoop
from crashpadkiller.source import PsutilProcessSource

logger = logging.getLogger(__name__)

JOIN_POLL_SECONDS = 0.5


def build_loop(config_path: Path | None, interval: float = DEFAULT_INTERVAL) -> ExecutionLoop:
    """Wire the real process source and configuration file into a loop."""
    engine = TerminationEngine(PsutilProcessSource())
    loader = functools.partial(load_targets, config_path)
    return ExecutionLoop(engine, loader, interval=interval)


def _install_stop_handlers() -> None:
    """Raise KeyboardInterrupt in the main thread on SIGTERM and Ctrl+Break."""
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    if hasattr(signal, "SIGBREAK"):
        signal.signal(signal.SIGBREAK, signal.default_int_handler)


def _run_daemon(ctx: click.Context, interval: int) -> None:
    if interval <= 0:
        raise click.BadParameter("must be a positive number of seconds", param_hint="INTERVAL")

    loop = build_loop(ctx.obj["config"], interval=interval)
    _install_stop_handlers()
    try:
        loop.start()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)

    # Short joins keep the main thread responsive to Ctrl+C on Windows
    try:
        while not loop.join(timeout=JOIN_POLL_SECONDS):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        loop.stop()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=CONFIG_PATH_ENV,
    help="Path to the process configuration XML (default: process.xml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log every kill attempt.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write log records to this file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool, log_file: Path | None) -> None:
    """Terminate stray processes listed in a configuration file."""
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path


@cli.command()
@click.pass_context
def oneshot(ctx: click.Context) -> None:
    """Run a single pass and exit."""
    loop = build_loop(ctx.obj["config"])
    try:
        loop.run_once()
    except (ConfigError, TickError) as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


@cli.command()
@click.argument("interval", type=int, default=int(DEFAULT_INTERVAL))
@click.pass_context
def daemon(ctx: click.Context, interval: int) -> None:
    """Run a pass every INTERVAL seconds until interrupted."""
    _run_daemon(ctx, interval)


@cli.group(name="service")
def service_group() -> None:
    """Manage the Windows service."""


@service_group.command()
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    default=int(DEFAULT_INTERVAL),
    show_default=True,
)
@click.pass_context
def install(ctx: click.Context, interval: int) -> None:
    """Install and register the service."""
    config_path = resolve_config_path(ctx.obj["config"])
    if not config_path.is_file():
        raise click.ClickException(f"Configuration file not found: {config_path}")
    try:
        service.install_service(config_path, interval)
    except ServiceError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Service '{service.SERVICE_DISPLAY_NAME}' installed successfully.")


@service_group.command()
def uninstall() -> None:
    """Stop and remove the service."""
    try:
        service.uninstall_service()
    except ServiceError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Service '{service.SERVICE_DISPLAY_NAME}' uninstalled successfully.")


@service_group.command()
def status() -> None:
    """Report whether the service is installed."""
    try:
        installed = service.is_service_installed()
    except ServiceError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo("installed" if installed else "not installed")


@service_group.command(name="run")
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    default=int(DEFAULT_INTERVAL),
    show_default=True,
)
@click.pass_context
def run_service(ctx: click.Context, interval: int) -> None:
    """Run the loop under the Windows service manager."""
    add_event_log_handler()
    loop_factory = functools.partial(build_loop, ctx.obj["config"], interval)
    try:
        service.host_service(loop_factory)
    except ServiceError as exc:
        logger.error("%s", exc)
        raise click.ClickException(str(exc)) from exc


def main() -> None:
    """Entry point for the crashpadkiller console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
