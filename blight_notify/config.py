"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

# Notification expire_timeout special values
TIMEOUT_DEFAULT = -1
TIMEOUT_NEVER = 0

_TIMEOUT_NAMES = {"default": TIMEOUT_DEFAULT, "never": TIMEOUT_NEVER}


def parse_timeout(value: Union[str, int]) -> int:
    """Parse a notification timeout in milliseconds.

    Accepts an integer, or "default" (server decides) / "never" (no expiry).
    """
    if isinstance(value, str):
        name = value.strip().lower()
        if name in _TIMEOUT_NAMES:
            return _TIMEOUT_NAMES[name]
        value = int(name)
    if value < TIMEOUT_DEFAULT:
        raise ValueError(f"timeout must be >= -1 milliseconds, got {value}")
    return value


class NotificationSettings(BaseModel):
    """What the brightness notification looks like."""

    title: str = Field(default="Blight")
    message: str = Field(default="Brightness adjusted:")
    icon: Optional[str] = None  # None selects an icon from the level
    timeout: int = Field(default=1000, description="Milliseconds, -1 default, 0 never")

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, v: Any) -> int:
        if isinstance(v, (str, int)) and not isinstance(v, bool):
            return parse_timeout(v)
        return v


class WatchSettings(BaseModel):
    """Backlight polling settings."""

    poll_interval: float = Field(default=0.5, gt=0.0, le=60.0)
    backlight_dir: Path = Field(default=Path("/sys/class/backlight"))
    devices: list[str] = Field(default_factory=list)  # empty watches every device


class CoalesceSettings(BaseModel):
    """Burst settling window."""

    slot_interval: float = Field(default=0.15, gt=0.0, le=5.0)
    max_slots: int = Field(default=10, ge=1, le=100)
    early_settle: bool = False


class DaemonSettings(BaseModel):
    """Daemon behavior settings."""

    log_level: str = Field(default="INFO")
    quiet: bool = False


class Settings(BaseSettings):
    """Root configuration combining all settings."""

    model_config = SettingsConfigDict(
        env_prefix="BLIGHT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    coalesce: CoalesceSettings = Field(default_factory=CoalesceSettings)
    daemon: DaemonSettings = Field(default_factory=DaemonSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; environment variables win over them
        return env_settings, init_settings

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from env vars and optional YAML file.

        Priority: Environment variables override YAML file values.
        """
        yaml_data: dict = {}

        if config_path and config_path.exists():
            with open(config_path) as f:
                yaml_data = yaml.safe_load(f) or {}
        else:
            default_paths = [
                Path.home() / ".config" / "blight-notify" / "config.yaml",
                Path.home() / ".config" / "blight-notify" / "config.yml",
                Path("config.yaml"),
                Path("config.yml"),
            ]
            for path in default_paths:
                if path.exists():
                    with open(path) as f:
                        yaml_data = yaml.safe_load(f) or {}
                    break

        if not isinstance(yaml_data, dict):
            raise ValueError("Top-level config must be a mapping")

        # Plain dicts so env values merge into, rather than replace, each section
        return cls(
            **{
                key: yaml_data.get(key, {})
                for key in ("notification", "watch", "coalesce", "daemon")
            }
        )
