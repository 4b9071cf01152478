"""Backlight notification daemon."""

import asyncio
import logging
import signal
from typing import Optional

from blight_notify.backends.backlight import BacklightDevice, enumerate_devices
from blight_notify.backends.notifier import Notifier
from blight_notify.coalescer import Channel, Coalescer, Sample
from blight_notify.config import Settings
from blight_notify.errors import WatchError
from blight_notify.watcher import BrightnessHandler, PollWatcher

logger = logging.getLogger(__name__)


class Daemon:
    """Watch backlight devices and notify on settled brightness changes."""

    def __init__(self, settings: Settings, notifier: Optional[Notifier] = None):
        """Initialize the daemon with settings.

        Args:
            settings: Loaded configuration.
            notifier: Notification sink, defaults to a session bus Notifier.
        """
        self.settings = settings
        self.notifier = notifier or Notifier(settings.notification)

        self.devices: list[BacklightDevice] = []
        self.channel: Optional[Channel] = None
        self.watcher: Optional[PollWatcher] = None
        self.coalescer: Optional[Coalescer] = None

        self._shutdown_event = asyncio.Event()

    async def run(self) -> None:
        """Main entry point - run the daemon until a shutdown signal.

        Raises:
            BacklightError: The backlight directory can't be read.
            WatchError: No brightness file could be watched.
            ChannelClosed: The watcher stopped producing samples.
        """
        self._setup_signal_handlers()
        logger.info("blight-notify daemon started")

        try:
            self._setup_pipeline()
            await self._run_pipeline()
        finally:
            self._remove_signal_handlers()
            self.notifier.close()
            logger.info("Daemon shutdown complete")

    def shutdown(self) -> None:
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Register signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda s=sig: self._handle_shutdown(s))

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    def _handle_shutdown(self, sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received {sig.name}, shutting down...")
        self.shutdown()

    def _select_devices(self) -> list[BacklightDevice]:
        """Enumerate devices, narrowed to the configured names if any."""
        watch = self.settings.watch
        devices = enumerate_devices(watch.backlight_dir)
        if not watch.devices:
            return devices

        wanted = set(watch.devices)
        for name in sorted(wanted - {d.name for d in devices}):
            logger.warning(f"Configured device not found: {name}")
        return [d for d in devices if d.name in wanted]

    def _setup_pipeline(self) -> None:
        """Build the channel, watcher and coalescer and arm every device."""
        self.devices = self._select_devices()

        self.channel = Channel()
        self.watcher = PollWatcher(
            BrightnessHandler(self.channel),
            poll_interval=self.settings.watch.poll_interval,
        )
        coalesce = self.settings.coalesce
        self.coalescer = Coalescer(
            self.channel,
            slot_interval=coalesce.slot_interval,
            max_slots=coalesce.max_slots,
            early_settle=coalesce.early_settle,
        )

        for device in self.devices:
            try:
                self.watcher.watch(device.brightness_path)
            except WatchError as e:
                logger.warning(str(e))

        if not self.watcher.paths:
            raise WatchError(f"No backlight devices to watch in {self.settings.watch.backlight_dir}")

    async def _watch(self) -> None:
        assert self.watcher is not None and self.channel is not None
        try:
            await self.watcher.run()
        except Exception as e:
            logger.exception(f"Watcher stopped: {e}")
        finally:
            self.channel.close()

    async def _run_pipeline(self) -> None:
        assert self.coalescer is not None

        watch_task = asyncio.create_task(self._watch())
        consume_task = asyncio.create_task(self.coalescer.run(self._notify))
        stop_task = asyncio.create_task(self._shutdown_event.wait())

        try:
            done, _ = await asyncio.wait(
                {consume_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (watch_task, consume_task, stop_task):
                task.cancel()
            await asyncio.gather(watch_task, consume_task, stop_task, return_exceptions=True)

        if consume_task in done:
            # Only ends by raising, e.g. ChannelClosed
            consume_task.result()

    async def _notify(self, sample: Sample) -> None:
        try:
            await self.notifier.notify(sample.fraction)
        except Exception as e:
            logger.exception(f"Error sending notification: {e}")
