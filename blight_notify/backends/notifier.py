"""Desktop notifications via the freedesktop Notifications service."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from dbus_next import Variant
from dbus_next.aio import MessageBus

from blight_notify.config import NotificationSettings

logger = logging.getLogger(__name__)

BUS_NAME = "org.freedesktop.Notifications"
OBJ_PATH = "/org/freedesktop/Notifications"

APP_NAME = "Blight notify"
# Fixed id so a new notification replaces the previous one instead of stacking
NOTIFICATION_ID = 696969

URGENCY_LOW = 0


def percentage(fraction: float) -> int:
    """Whole percentage, truncated toward zero."""
    return int(fraction * 100)


def format_message(message: str, fraction: float) -> str:
    """Format the notification body, e.g. "Brightness adjusted: 78%"."""
    return f"{message} {percentage(fraction)}%"


def auto_icon(fraction: float) -> str:
    """Pick a freedesktop brightness icon matching the level."""
    pct = percentage(fraction)
    if pct <= 0:
        level = "off"
    elif pct < 34:
        level = "low"
    elif pct < 67:
        level = "medium"
    else:
        level = "high"
    return f"display-brightness-{level}-symbolic"


@dataclass(frozen=True)
class NotificationRequest:
    """Arguments of a single org.freedesktop.Notifications.Notify call."""

    summary: str
    body: str
    icon: str
    timeout: int
    app_name: str = APP_NAME
    replaces_id: int = NOTIFICATION_ID
    actions: list[str] = field(default_factory=list)
    hints: dict[str, Variant] = field(
        default_factory=lambda: {"urgency": Variant("y", URGENCY_LOW)}
    )

    def as_args(self) -> tuple[Any, ...]:
        # Notify(susssasa{sv}i)
        return (
            self.app_name,
            self.replaces_id,
            self.icon,
            self.summary,
            self.body,
            self.actions,
            self.hints,
            self.timeout,
        )


def build_request(settings: NotificationSettings, fraction: float) -> NotificationRequest:
    """Build the notification for a settled brightness fraction."""
    return NotificationRequest(
        summary=settings.title,
        body=format_message(settings.message, fraction),
        icon=settings.icon or auto_icon(fraction),
        timeout=settings.timeout,
    )


class Notifier:
    """Send brightness notifications over the session bus."""

    def __init__(self, settings: NotificationSettings):
        """Initialize the notifier.

        Args:
            settings: Title, message prefix, icon override and timeout.
        """
        self.settings = settings
        self._bus: Optional[MessageBus] = None
        self._iface: Optional[Any] = None
        self._disconnect_task: Optional[asyncio.Future] = None

    async def _connect(self) -> Any:
        """Connect to the session bus and return the Notifications proxy."""
        bus = await MessageBus().connect()
        try:
            introspection = await bus.introspect(BUS_NAME, OBJ_PATH)
        except Exception:
            bus.disconnect()
            raise
        obj = bus.get_proxy_object(BUS_NAME, OBJ_PATH, introspection)
        self._bus = bus
        self._disconnect_task = asyncio.ensure_future(self._drop_on_disconnect(bus))
        return obj.get_interface(BUS_NAME)

    async def _drop_on_disconnect(self, bus: MessageBus) -> None:
        """Forget the proxy once its bus goes away, so pending work reconnects."""
        try:
            await bus.wait_for_disconnect()
        except Exception as e:
            logger.debug(f"Session bus closed with error: {e!r}")
        if self._bus is bus:
            logger.warning("Session bus disconnected, will reconnect on next notification")
            self._bus = None
            self._iface = None

    async def notify(self, fraction: float) -> bool:
        """Show a notification for ``fraction``.

        Returns:
            True if the notification server accepted the request, False on
            failure. Failures are logged and never raised.
        """
        request = build_request(self.settings, fraction)

        try:
            if self._iface is None:
                self._iface = await self._connect()
            notification_id = await self._iface.call_notify(*request.as_args())
        except Exception as e:
            # Includes EOFError and marshaller errors when the bus drops
            logger.error(f"Notification failed: {e!r}")
            self.close()
            return False

        logger.debug(f"Notified '{request.body}' (id={notification_id})")
        return True

    def close(self) -> None:
        """Drop the bus connection; the next notify() reconnects."""
        if self._bus is not None and self._bus.connected:
            self._bus.disconnect()
        self._bus = None
        self._iface = None
