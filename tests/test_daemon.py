from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import pytest

from blight_notify.config import Settings
from blight_notify.daemon import Daemon
from blight_notify.errors import BacklightError, ChannelClosed, WatchError
from blight_notify.watcher import PollWatcher


class FakeNotifier:
    def __init__(self) -> None:
        self.fractions: list[float] = []
        self.closed = False
        self.event = asyncio.Event()

    async def notify(self, fraction: float) -> bool:
        self.fractions.append(fraction)
        self.event.set()
        return True

    def close(self) -> None:
        self.closed = True


def make_settings(backlight_dir: Path, devices: list[str] | None = None) -> Settings:
    return Settings(
        watch={"backlight_dir": backlight_dir, "poll_interval": 0.01, "devices": devices or []},
        coalesce={"slot_interval": 0.01, "max_slots": 3},
    )


async def _wait_for(notifier: FakeNotifier) -> None:
    await asyncio.wait_for(notifier.event.wait(), timeout=2.0)
    notifier.event.clear()


def test_brightness_change_is_notified(sysfs: Path) -> None:
    async def scenario() -> FakeNotifier:
        notifier = FakeNotifier()
        daemon = Daemon(make_settings(sysfs), notifier=notifier)
        task = asyncio.create_task(daemon.run())
        await asyncio.sleep(0.05)

        (sysfs / "intel_backlight" / "brightness").write_text("48000\n", encoding="utf-8")
        await _wait_for(notifier)
        (sysfs / "acpi_video0" / "brightness").write_text("78\n", encoding="utf-8")
        await _wait_for(notifier)

        daemon.shutdown()
        await asyncio.wait_for(task, timeout=2.0)
        return notifier

    notifier = asyncio.run(scenario())
    assert notifier.fractions == [pytest.approx(0.5), pytest.approx(0.78)]
    assert notifier.closed


def test_device_filter(sysfs: Path) -> None:
    async def scenario() -> list[Path]:
        daemon = Daemon(make_settings(sysfs, ["acpi_video0", "ghost"]), notifier=FakeNotifier())
        task = asyncio.create_task(daemon.run())
        await asyncio.sleep(0.02)
        assert daemon.watcher is not None
        paths = daemon.watcher.paths
        daemon.shutdown()
        await asyncio.wait_for(task, timeout=2.0)
        return paths

    assert asyncio.run(scenario()) == [sysfs / "acpi_video0" / "brightness"]


def test_missing_backlight_dir_is_fatal(tmp_path: Path) -> None:
    daemon_settings = make_settings(tmp_path / "missing")

    async def scenario() -> None:
        await Daemon(daemon_settings, notifier=FakeNotifier()).run()

    with pytest.raises(BacklightError):
        asyncio.run(scenario())


def test_nothing_to_watch_is_fatal(tmp_path: Path) -> None:
    (tmp_path / "broken").mkdir()

    async def scenario() -> None:
        await Daemon(make_settings(tmp_path), notifier=FakeNotifier()).run()

    with pytest.raises(WatchError):
        asyncio.run(scenario())


def test_watcher_failure_stops_daemon(sysfs: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def broken_run(self: PollWatcher) -> None:
        raise RuntimeError("poll loop died")

    monkeypatch.setattr(PollWatcher, "run", broken_run)

    async def scenario() -> None:
        await Daemon(make_settings(sysfs), notifier=FakeNotifier()).run()

    with pytest.raises(ChannelClosed):
        asyncio.run(scenario())


def test_notifier_crash_does_not_stop_daemon(sysfs: Path) -> None:
    class CrashingNotifier(FakeNotifier):
        async def notify(self, fraction: float) -> bool:
            await super().notify(fraction)
            raise RuntimeError("boom")

    async def scenario() -> CrashingNotifier:
        notifier = CrashingNotifier()
        daemon = Daemon(make_settings(sysfs), notifier=notifier)
        task = asyncio.create_task(daemon.run())
        await asyncio.sleep(0.05)

        brightness = sysfs / "acpi_video0" / "brightness"
        brightness.write_text("10\n", encoding="utf-8")
        await _wait_for(notifier)
        brightness.write_text("20\n", encoding="utf-8")
        await _wait_for(notifier)

        daemon.shutdown()
        await asyncio.wait_for(task, timeout=2.0)
        return notifier

    assert asyncio.run(scenario()).fractions == [pytest.approx(0.1), pytest.approx(0.2)]


def test_corrupt_brightness_file_keeps_daemon_running(sysfs: Path) -> None:
    async def scenario() -> FakeNotifier:
        notifier = FakeNotifier()
        daemon = Daemon(make_settings(sysfs), notifier=notifier)
        task = asyncio.create_task(daemon.run())
        await asyncio.sleep(0.05)

        brightness = sysfs / "acpi_video0" / "brightness"
        brightness.write_bytes(b"\xff\n")
        await asyncio.sleep(0.05)
        assert not task.done()

        brightness.write_text("30\n", encoding="utf-8")
        await _wait_for(notifier)

        daemon.shutdown()
        await asyncio.wait_for(task, timeout=2.0)
        return notifier

    assert asyncio.run(scenario()).fractions == [pytest.approx(0.3)]


def test_signal_handlers_removed_after_run(sysfs: Path) -> None:
    async def scenario() -> bool:
        daemon = Daemon(make_settings(sysfs), notifier=FakeNotifier())
        task = asyncio.create_task(daemon.run())
        await asyncio.sleep(0.02)
        daemon.shutdown()
        await asyncio.wait_for(task, timeout=2.0)
        # False when no handler is registered any more
        return asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    assert asyncio.run(scenario()) is False


def test_signal_handlers_removed_after_fatal_error(tmp_path: Path) -> None:
    async def scenario() -> bool:
        with pytest.raises(BacklightError):
            await Daemon(make_settings(tmp_path / "missing"), notifier=FakeNotifier()).run()
        return asyncio.get_running_loop().remove_signal_handler(signal.SIGTERM)

    assert asyncio.run(scenario()) is False
