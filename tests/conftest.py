from __future__ import annotations

from pathlib import Path

import pytest


def make_device(root: Path, name: str, current: int, maximum: int) -> Path:
    dev = root / name
    dev.mkdir(parents=True)
    (dev / "brightness").write_text(f"{current}\n", encoding="utf-8")
    (dev / "max_brightness").write_text(f"{maximum}\n", encoding="utf-8")
    return dev


@pytest.fixture()
def sysfs(tmp_path: Path) -> Path:
    """A fake /sys/class/backlight with two devices."""
    root = tmp_path / "backlight"
    root.mkdir()
    make_device(root, "intel_backlight", 4800, 96000)
    make_device(root, "acpi_video0", 50, 100)
    return root
