"""CLI entry point for blight-notify."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from blight_notify import __version__
from blight_notify.cli.generate import generate_app
from blight_notify.errors import BlightError

logger = logging.getLogger("blight_notify")

app = typer.Typer(
    name="blight-notify",
    help="Desktop notifications for backlight brightness changes",
    add_completion=True,
)

app.add_typer(generate_app, name="generate")


def setup_logging(level: str, quiet: bool = False) -> None:
    """Configure logging."""
    if quiet:
        logging.disable(logging.CRITICAL)
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"blight-notify {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Desktop notifications for backlight brightness changes."""
    pass


@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config file",
        exists=True,
        dir_okay=False,
    ),
    title: Optional[str] = typer.Option(
        None,
        "--title",
        "-t",
        help="Notification title",
    ),
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Notification message, followed by the percentage",
    ),
    icon: Optional[str] = typer.Option(
        None,
        "--icon",
        "-i",
        help="Icon name or path (default: picked from brightness level)",
    ),
    timeout: Optional[str] = typer.Option(
        None,
        "--timeout",
        "-T",
        help="Notification timeout in milliseconds, 'default' or 'never'",
    ),
    pollrate: Optional[float] = typer.Option(
        None,
        "--pollrate",
        "-p",
        help="Backlight polling interval in seconds",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Disable logging",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug logging",
    ),
) -> None:
    """Run the notification daemon."""
    from blight_notify.config import Settings, parse_timeout
    from blight_notify.daemon import Daemon

    try:
        settings = Settings.load(config)

        # CLI overrides
        if title is not None:
            settings.notification.title = title
        if message is not None:
            settings.notification.message = message
        if icon is not None:
            settings.notification.icon = icon
        if timeout is not None:
            settings.notification.timeout = parse_timeout(timeout)
        if pollrate is not None:
            if pollrate <= 0:
                raise ValueError("pollrate must be > 0")
            settings.watch.poll_interval = pollrate
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(2)

    if quiet:
        settings.daemon.quiet = True
    if debug:
        settings.daemon.log_level = "DEBUG"

    setup_logging(settings.daemon.log_level, settings.daemon.quiet)

    daemon = Daemon(settings)

    try:
        asyncio.run(daemon.run())
    except BlightError as e:
        logger.error(f"Fatal: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        pass


@app.command("list")
def list_devices(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config file",
        exists=True,
        dir_okay=False,
    ),
    backlight_dir: Optional[Path] = typer.Option(
        None,
        "--backlight-dir",
        help="Backlight class directory (overrides config)",
    ),
) -> None:
    """List backlight devices and their current brightness."""
    from blight_notify.backends.backlight import enumerate_devices, read_brightness
    from blight_notify.backends.notifier import percentage
    from blight_notify.config import Settings
    from blight_notify.errors import BacklightError, BrightnessReadError

    if backlight_dir is None:
        try:
            backlight_dir = Settings.load(config).watch.backlight_dir
        except (ValidationError, ValueError, yaml.YAMLError) as e:
            typer.echo(f"Error: Invalid configuration: {e}", err=True)
            raise typer.Exit(2)

    try:
        devices = enumerate_devices(backlight_dir)
    except BacklightError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not devices:
        typer.echo("No backlight devices found.", err=True)
        raise typer.Exit(1)

    for d in devices:
        try:
            reading = read_brightness(d.brightness_path)
        except BrightnessReadError as e:
            typer.echo(f"{d.name}  unreadable  ({e})")
            continue
        typer.echo(
            f"{d.name}  {reading.current}/{reading.maximum}  {percentage(reading.fraction)}%"
        )


@app.command(hidden=True)
def help(ctx: typer.Context) -> None:
    """Show help message."""
    assert ctx.parent is not None
    typer.echo(ctx.parent.get_help())


if __name__ == "__main__":
    app()
