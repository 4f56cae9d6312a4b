"""Kiosk target and display state records."""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.exceptions import UnknownOrientationError

DEFAULT_OUTPUT = "HDMI-A-1"
TARGET_ID_PATTERN = r"^[a-z0-9][a-z0-9_-]*$"

_TARGET_ID_RE = re.compile(TARGET_ID_PATTERN)


class Orientation(Enum):
    """Logical screen rotation, valued in clockwise degrees."""
    LANDSCAPE = 0
    PORTRAIT_LEFT = 90
    INVERTED = 180
    PORTRAIT_RIGHT = 270

    @property
    def canonical(self) -> str:
        """Form written to the persisted records."""
        return str(self.value)

    @property
    def transform(self) -> str:
        """Form understood by the display transform tool."""
        return "normal" if self is Orientation.LANDSCAPE else str(self.value)

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def normalize(cls, value: Any) -> "Orientation":
        """Map any accepted spelling of a rotation onto a member.

        Raises:
            UnknownOrientationError: if ``value`` is not a known alias.
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise UnknownOrientationError(value) from None

        if isinstance(value, str):
            key = value.strip().lower()
            for suffix in ("degrees", "deg", "°"):
                if key.endswith(suffix):
                    key = key[:-len(suffix)].strip()
                    break
            key = key.replace("_", "-").replace(" ", "-")
            if key in _ALIASES:
                return _ALIASES[key]

        raise UnknownOrientationError(value)

    @classmethod
    def from_transform(cls, transform: Optional[str]) -> Optional["Orientation"]:
        """Orientation for a transform reported by the tool, if it is one of ours."""
        if transform is None:
            return None
        return _TRANSFORMS.get(transform.strip().lower())


_ALIASES = {
    "0": Orientation.LANDSCAPE,
    "normal": Orientation.LANDSCAPE,
    "landscape": Orientation.LANDSCAPE,
    "90": Orientation.PORTRAIT_LEFT,
    "portrait-left": Orientation.PORTRAIT_LEFT,
    "left": Orientation.PORTRAIT_LEFT,
    "180": Orientation.INVERTED,
    "inverted": Orientation.INVERTED,
    "270": Orientation.PORTRAIT_RIGHT,
    "portrait": Orientation.PORTRAIT_RIGHT,
    "portrait-right": Orientation.PORTRAIT_RIGHT,
    "right": Orientation.PORTRAIT_RIGHT,
}

_TRANSFORMS = {orientation.transform: orientation for orientation in Orientation}

_LABELS = {
    Orientation.LANDSCAPE: "0° (Landscape)",
    Orientation.PORTRAIT_LEFT: "90° (Portrait Left)",
    Orientation.INVERTED: "180° (Inverted)",
    Orientation.PORTRAIT_RIGHT: "270° (Portrait Right)",
}


def is_valid_target_id(target_id: str) -> bool:
    return bool(target_id) and _TARGET_ID_RE.match(target_id) is not None


class KioskTarget(BaseModel):
    """One configured dashboard."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., pattern=TARGET_ID_PATTERN, max_length=64)
    display_name: str = Field(default="")
    url: str = Field(default="")
    preferred_orientation: Orientation = Field(default=Orientation.PORTRAIT_RIGHT)

    @field_validator("url")
    @classmethod
    def strip_url(cls, v):
        return v.strip()

    @field_validator("preferred_orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, v):
        try:
            return Orientation.normalize(v)
        except UnknownOrientationError as e:
            raise ValueError(str(e)) from e

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    @property
    def label(self) -> str:
        return self.display_name or self.id.capitalize()


class SystemDisplayState(BaseModel):
    """Output the transform applies to and the orientation restored at boot."""
    model_config = ConfigDict(frozen=True)

    output_identifier: str = Field(default=DEFAULT_OUTPUT, min_length=1)
    saved_orientation: Orientation = Field(default=Orientation.PORTRAIT_RIGHT)

    @field_validator("saved_orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, v):
        try:
            return Orientation.normalize(v)
        except UnknownOrientationError as e:
            raise ValueError(str(e)) from e
