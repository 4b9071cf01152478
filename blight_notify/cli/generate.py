"""CLI commands for generating service files."""

import os
import sys
from pathlib import Path
from typing import Optional

import typer

generate_app = typer.Typer(help="Generate configuration and service files")


def _get_session_env() -> tuple[str, str]:
    """Get the session bus address and runtime dir of the current session."""
    xdg_runtime_dir = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    bus_address = os.environ.get(
        "DBUS_SESSION_BUS_ADDRESS", f"unix:path={xdg_runtime_dir}/bus"
    )
    return bus_address, xdg_runtime_dir


def render_systemd_unit(config_path: Optional[Path] = None) -> str:
    """Render a systemd user unit running the daemon."""
    python_path = sys.executable
    bus_address, xdg_runtime = _get_session_env()

    config_arg = f" --config {config_path}" if config_path else ""

    return f"""\
[Unit]
Description=Backlight brightness notification daemon
After=graphical-session.target
PartOf=graphical-session.target

[Service]
Type=simple
ExecStart={python_path} -m blight_notify run{config_arg}
Restart=on-failure
RestartSec=5

# Session bus for desktop notifications
Environment=DBUS_SESSION_BUS_ADDRESS={bus_address}
Environment=XDG_RUNTIME_DIR={xdg_runtime}

NoNewPrivileges=true
ProtectSystem=strict
ProtectHome=read-only
PrivateTmp=true

[Install]
WantedBy=graphical-session.target
"""


@generate_app.command("systemd")
def generate_systemd(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write to file instead of stdout",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file to use in unit",
    ),
) -> None:
    """Generate a systemd user unit file.

    The generated unit is intended for use with 'systemctl --user'.

    Example usage:
        blight-notify generate systemd > ~/.config/systemd/user/blight-notify.service
        systemctl --user daemon-reload
        systemctl --user enable --now blight-notify
    """
    unit = render_systemd_unit(config_path)

    if output:
        output.write_text(unit)
        typer.echo(f"Written to {output}")
        typer.echo()
        typer.echo("To install:")
        typer.echo(f"  cp {output} ~/.config/systemd/user/")
        typer.echo("  systemctl --user daemon-reload")
        typer.echo("  systemctl --user enable --now blight-notify")
    else:
        typer.echo(unit)
        typer.echo("# Save to: ~/.config/systemd/user/blight-notify.service")
        typer.echo("# Then run:")
        typer.echo("#   systemctl --user daemon-reload")
        typer.echo("#   systemctl --user enable --now blight-notify")


ENV_TEMPLATE = """\
# blight-notify environment configuration
# Environment variables override config file values

# Notification
BLIGHT_NOTIFICATION__TITLE=Blight
BLIGHT_NOTIFICATION__MESSAGE="Brightness adjusted:"
# BLIGHT_NOTIFICATION__ICON=display-brightness-symbolic
BLIGHT_NOTIFICATION__TIMEOUT=1000

# Watching
BLIGHT_WATCH__POLL_INTERVAL=0.5

# Daemon
BLIGHT_DAEMON__LOG_LEVEL=INFO
"""


@generate_app.command("env")
def generate_env(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write to file instead of stdout",
    ),
) -> None:
    """Generate an example .env file for configuration.

    Environment variables can be used instead of or alongside a YAML config file.
    Environment variables take precedence over config file values.
    """
    if output:
        output.write_text(ENV_TEMPLATE)
        typer.echo(f"Written to {output}")
    else:
        typer.echo(ENV_TEMPLATE)


CONFIG_TEMPLATE = """\
# blight-notify configuration
# Save to ~/.config/blight-notify/config.yaml or use --config flag

notification:
  title: Blight
  message: "Brightness adjusted:"
  # icon: display-brightness-symbolic   # default: chosen from the level
  timeout: 1000                          # ms, or "default" / "never"

watch:
  poll_interval: 0.5
  backlight_dir: /sys/class/backlight
  # Only watch these devices (run 'blight-notify list' to see names)
  # devices:
  #   - intel_backlight

coalesce:
  slot_interval: 0.15
  max_slots: 10
  early_settle: false

daemon:
  log_level: INFO
  quiet: false
"""


@generate_app.command("config")
def generate_config(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write to file instead of stdout",
    ),
) -> None:
    """Generate an example YAML configuration file.

    Example usage:
        blight-notify generate config > ~/.config/blight-notify/config.yaml
    """
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(CONFIG_TEMPLATE)
        typer.echo(f"Written to {output}")
    else:
        typer.echo(CONFIG_TEMPLATE)
