"""Configuration schema definitions using Pydantic."""

from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.exceptions import UnknownOrientationError
from .models import DEFAULT_OUTPUT, TARGET_ID_PATTERN, KioskTarget, Orientation


def _normalize_orientation(v):
    try:
        return Orientation.normalize(v)
    except UnknownOrientationError as e:
        raise ValueError(str(e)) from e


def _validate_url(v: str) -> str:
    v = v.strip()
    if v and not (v.startswith("http://") or v.startswith("https://") or v.startswith("file://")):
        raise ValueError("URL must start with http://, https://, or file://")
    return v


class PathsConfig(BaseModel):
    """Filesystem locations."""
    kiosk_home: Path = Field(default=Path("~/kiosk"))
    profile_root: Path = Field(default=Path("~/.config"))
    unit_dir: Path = Field(default=Path("~/.config/systemd/user"))
    log_dir: Path = Field(default=Path("~/kiosk/logs"))

    @field_validator("kiosk_home", "profile_root", "unit_dir", "log_dir")
    @classmethod
    def expand_home(cls, v):
        return Path(v).expanduser()

    @property
    def env_dir(self) -> Path:
        return self.kiosk_home / "env"

    @property
    def legacy_rotation_file(self) -> Path:
        return self.kiosk_home / "saved_rotation.conf"

    def profile_dir(self, target_id: str) -> Path:
        return self.profile_root / f"chrome-kiosk-{target_id}"


class TargetSpec(BaseModel):
    """A kiosk target written by provisioning when its record is missing."""
    id: str = Field(..., pattern=TARGET_ID_PATTERN, max_length=64)
    display_name: str = Field(default="")
    url: str = Field(default="")
    orientation: Orientation = Field(default=Orientation.PORTRAIT_RIGHT)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Basic URL validation."""
        return _validate_url(v)

    @field_validator("orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, v):
        return _normalize_orientation(v)

    def to_target(self) -> KioskTarget:
        return KioskTarget(
            id=self.id,
            display_name=self.display_name,
            url=self.url,
            preferred_orientation=self.orientation,
        )


def _default_targets() -> List[TargetSpec]:
    return [
        TargetSpec(id="kuma", display_name="Uptime Kuma", url="http://uptime.example.com/dashboard"),
        TargetSpec(id="kibana", display_name="Kibana", url="http://kibana.example.com/dashboard"),
        TargetSpec(id="grafana", display_name="Grafana", url="http://grafana.example.com/dashboard"),
    ]


class DisplayConfig(BaseModel):
    """Display transform tool settings."""
    default_output: str = Field(default=DEFAULT_OUTPUT, min_length=1)
    default_orientation: Orientation = Field(default=Orientation.PORTRAIT_RIGHT)
    tool_binary: str = Field(default="wlr-randr", min_length=1)
    tool_ready_timeout: float = Field(default=30, ge=0, le=600)
    tool_poll_interval: float = Field(default=1, gt=0, le=60)
    settle_delay: float = Field(default=1, ge=0, le=30)
    boot_settle_delay: float = Field(default=5, ge=0, le=120)
    command_timeout: float = Field(default=10, gt=0, le=120)

    @field_validator("default_orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, v):
        return _normalize_orientation(v)


class NetworkConfig(BaseModel):
    """Network reachability probe settings."""
    timeout: float = Field(default=60, ge=0, le=3600)
    poll_interval: float = Field(default=2, gt=0, le=60)
    probe_urls: List[str] = Field(default_factory=lambda: ["http://connectivitycheck.gstatic.com/generate_204"])
    probe_hosts: List[str] = Field(default_factory=lambda: ["1.1.1.1", "8.8.8.8"])
    probe_timeout: float = Field(default=2, gt=0, le=30)


class BrowserConfig(BaseModel):
    """Chromium settings."""
    binary: str = Field(default="auto", min_length=1)
    extra_flags: List[str] = Field(default_factory=list)
    disable_screensaver: bool = Field(default=True)
    hide_cursor: bool = Field(default=True)
    cursor_idle: int = Field(default=3, ge=0, le=600)
    startup_delay: float = Field(default=5, ge=0, le=120)
    stale_kill_timeout: float = Field(default=5, gt=0, le=60)


class SessionConfig(BaseModel):
    """Supervised session (systemd user unit) settings."""
    restart_sec: int = Field(default=10, ge=1, le=3600)
    environment: Dict[str, str] = Field(
        default_factory=lambda: {"DISPLAY": ":0", "WAYLAND_DISPLAY": "wayland-0"}
    )


class APIConfig(BaseModel):
    """HTTP control API settings."""
    bind_address: str = Field(default="127.0.0.1")
    bind_port: int = Field(default=8080, ge=1, le=65535)


class LoggingConfig(BaseModel):
    """Logging settings."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


class Settings(BaseModel):
    """Main configuration container."""
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    paths: PathsConfig = Field(default_factory=PathsConfig)
    targets: List[TargetSpec] = Field(default_factory=_default_targets)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("targets")
    @classmethod
    def unique_target_ids(cls, v):
        ids = [target.id for target in v]
        duplicates = sorted({target_id for target_id in ids if ids.count(target_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate target ids: {', '.join(duplicates)}")
        return v
