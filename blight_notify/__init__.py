"""Desktop notifications for backlight brightness changes."""

__version__ = "0.1.0"
