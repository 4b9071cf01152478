"""Exception types raised across the daemon."""


class BlightError(Exception):
    """Base class for blight-notify errors."""


class BacklightError(BlightError):
    """The backlight device directory could not be read."""


class BrightnessReadError(BlightError):
    """A brightness or max_brightness file was unreadable or malformed."""


class WatchError(BlightError):
    """A path could not be placed under watch."""


class ChannelClosed(BlightError):
    """The sample channel was closed and fully drained."""
