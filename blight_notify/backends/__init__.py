"""Backend modules for backlight access and notification delivery."""

from blight_notify.backends.backlight import (
    BacklightDevice,
    BrightnessReading,
    enumerate_devices,
    read_brightness,
)
from blight_notify.backends.notifier import Notifier

__all__ = [
    "BacklightDevice",
    "BrightnessReading",
    "enumerate_devices",
    "read_brightness",
    "Notifier",
]
