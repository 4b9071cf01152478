"""Collapse bursts of brightness samples into one settled value.

Backlight drivers often report many writes for a single user action (a held
brightness key, a smooth fade). Each would otherwise raise its own
notification. The coalescer waits out the burst and emits only the value the
backlight settled on.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Callable, Optional

from blight_notify.errors import ChannelClosed

logger = logging.getLogger(__name__)

DEFAULT_SLOT_INTERVAL = 0.15
DEFAULT_MAX_SLOTS = 10

_CLOSED = object()


@dataclass(frozen=True)
class Sample:
    """One brightness observation."""

    device: str
    fraction: float


class Channel:
    """Unbounded single-consumer queue of samples with explicit close.

    After close(), buffered samples are still delivered; once drained,
    recv() raises ChannelClosed and try_recv() returns None.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, sample: Sample) -> None:
        if self._closed:
            raise ChannelClosed("send on closed channel")
        self._queue.put_nowait(sample)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def recv(self) -> Sample:
        """Wait for the next sample."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any later receive
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosed("all producers are gone")
        return item

    def try_recv(self) -> Optional[Sample]:
        """Return the next sample if one is buffered, else None."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        return item


class Coalescer:
    """Debounce samples from a channel.

    A lone sample is emitted as soon as it arrives. When a second sample is
    already waiting, the coalescer polls the channel once per slot for
    ``max_slots`` slots and settles on the last sample seen; a burst longer
    than the window therefore yields an intermediate value and a new cycle.
    """

    def __init__(
        self,
        channel: Channel,
        slot_interval: float = DEFAULT_SLOT_INTERVAL,
        max_slots: int = DEFAULT_MAX_SLOTS,
        early_settle: bool = False,
    ):
        """Initialize the coalescer.

        Args:
            channel: Source of samples.
            slot_interval: Seconds to wait between polls while draining.
            max_slots: Number of polls in the drain phase.
            early_settle: Stop draining at the first empty slot instead of
                always running every slot.
        """
        self.channel = channel
        self.slot_interval = slot_interval
        self.max_slots = max_slots
        self.early_settle = early_settle

    async def settle(self) -> Sample:
        """Wait for the next burst and return its settled sample.

        Raises:
            ChannelClosed: If the channel is closed and empty.
        """
        first = await self.channel.recv()

        second = self.channel.try_recv()
        if second is None:
            return first

        last: Optional[Sample] = None
        for _ in range(self.max_slots):
            await asyncio.sleep(self.slot_interval)
            sample = self.channel.try_recv()
            if sample is not None:
                last = sample
            elif self.early_settle:
                break

        return last if last is not None else second

    async def run(self, emit: Callable[[Sample], Awaitable[object]]) -> None:
        """Settle bursts forever, passing each settled sample to ``emit``."""
        while True:
            sample = await self.settle()
            logger.debug(f"Settled on {sample.fraction:.3f} from {sample.device}")
            await emit(sample)
