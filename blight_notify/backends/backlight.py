"""Backlight device discovery and brightness reading via sysfs."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from blight_notify.errors import BacklightError, BrightnessReadError

logger = logging.getLogger(__name__)

BACKLIGHT_ROOT = Path("/sys/class/backlight")
BRIGHTNESS_FILE = "brightness"
MAX_BRIGHTNESS_FILE = "max_brightness"


@dataclass(frozen=True)
class BacklightDevice:
    """A kernel backlight device, e.g. /sys/class/backlight/intel_backlight."""

    name: str  # e.g., "intel_backlight", "amdgpu_bl0"
    path: Path

    @property
    def brightness_path(self) -> Path:
        return self.path / BRIGHTNESS_FILE

    @property
    def max_brightness_path(self) -> Path:
        return self.path / MAX_BRIGHTNESS_FILE


@dataclass(frozen=True)
class BrightnessReading:
    """Raw brightness values read from one device."""

    current: int
    maximum: int

    @property
    def fraction(self) -> float:
        """Current brightness as a fraction of the maximum.

        Not clamped: a device reporting current > maximum yields a value
        above 1.0.
        """
        return self.current / self.maximum


def enumerate_devices(root: Union[str, Path] = BACKLIGHT_ROOT) -> list[BacklightDevice]:
    """List the backlight devices exposed under ``root``.

    Raises:
        BacklightError: If ``root`` cannot be listed (missing, not a directory,
            permission denied).
    """
    root = Path(root)
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise BacklightError(f"Cannot read backlight directory {root}: {e}") from e

    devices = [BacklightDevice(name=entry.name, path=entry) for entry in entries]
    logger.debug(f"Found {len(devices)} backlight device(s) under {root}")
    return devices


def _read_int(path: Path) -> int:
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise BrightnessReadError(f"Cannot read {path}: {e}") from e
    # Parsed from bytes; sysfs attributes are ASCII but may hold garbage
    try:
        return int(raw.strip())
    except ValueError as e:
        raise BrightnessReadError(f"Invalid value in {path}: {raw.strip()!r}") from e


def read_brightness(brightness_path: Union[str, Path]) -> BrightnessReading:
    """Read current and maximum brightness for a device.

    Args:
        brightness_path: Path to the device's ``brightness`` file. The maximum
            is read from the sibling ``max_brightness`` file.

    Raises:
        BrightnessReadError: If either file is unreadable or not an integer,
            or the maximum is zero.
    """
    brightness_path = Path(brightness_path)
    current = _read_int(brightness_path)
    maximum = _read_int(brightness_path.with_name(MAX_BRIGHTNESS_FILE))
    if maximum == 0:
        raise BrightnessReadError(f"max_brightness is 0 for {brightness_path.parent}")
    return BrightnessReading(current=current, maximum=maximum)
