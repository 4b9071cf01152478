"""Polling change watcher for backlight brightness files.

sysfs attributes don't reliably produce inotify events when the kernel or a
brightness tool writes them, so changes are found by re-reading each file at
a fixed interval and comparing contents.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from blight_notify.backends.backlight import read_brightness
from blight_notify.coalescer import Channel, Sample
from blight_notify.errors import BrightnessReadError, ChannelClosed, WatchError

logger = logging.getLogger(__name__)


@dataclass
class ChangeEvent:
    """One or more watched paths whose contents changed."""

    paths: list[Path] = field(default_factory=list)


class PollWatcher:
    """Watch files by content comparison."""

    def __init__(self, handler: Callable[[ChangeEvent], None], poll_interval: float = 0.5):
        """Initialize the watcher.

        Args:
            handler: Called synchronously with each ChangeEvent.
            poll_interval: Seconds between scans.
        """
        self.handler = handler
        self.poll_interval = poll_interval
        # Last seen contents per path; None while unreadable
        self._contents: dict[Path, Optional[bytes]] = {}

    @property
    def paths(self) -> list[Path]:
        return list(self._contents)

    def watch(self, path: Union[str, Path]) -> None:
        """Start watching ``path`` (non-recursive).

        Raises:
            WatchError: If the file cannot be read.
        """
        path = Path(path)
        try:
            self._contents[path] = path.read_bytes()
        except OSError as e:
            raise WatchError(f"Cannot watch {path}: {e}") from e
        logger.info(f"Watching: {path}")

    def unwatch(self, path: Union[str, Path]) -> None:
        self._contents.pop(Path(path), None)

    def scan(self) -> int:
        """Re-read every watched file once and dispatch changes.

        Returns:
            Number of change events dispatched.
        """
        events = 0
        for path, previous in list(self._contents.items()):
            try:
                current: Optional[bytes] = path.read_bytes()
            except OSError as e:
                if previous is not None:
                    logger.warning(f"Lost access to {path}: {e}")
                current = None

            self._contents[path] = current
            if current is None or current == previous:
                continue

            logger.debug(f"Change detected: {path}")
            self.handler(ChangeEvent(paths=[path]))
            events += 1
        return events

    async def run(self) -> None:
        """Scan at the poll interval until cancelled."""
        while True:
            await asyncio.sleep(self.poll_interval)
            self.scan()


class BrightnessHandler:
    """Turn change events into brightness samples on a channel."""

    def __init__(self, channel: Channel):
        self.channel = channel

    def __call__(self, event: ChangeEvent) -> None:
        if not event.paths:
            return

        # Each watched path is an independent file; only the last one counts
        path = event.paths.pop()
        try:
            reading = read_brightness(path)
        except BrightnessReadError as e:
            logger.warning(f"Dropping change event: {e}")
            return

        fraction = reading.fraction
        if not 0.0 <= fraction <= 1.0:
            logger.warning(
                f"{path.parent.name} reports brightness {reading.current} "
                f"outside 0..{reading.maximum}"
            )

        try:
            self.channel.send(Sample(device=path.parent.name, fraction=fraction))
        except ChannelClosed:
            logger.debug(f"Channel closed, dropping sample from {path}")
