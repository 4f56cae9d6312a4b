"""Kiosk configuration and persisted state."""

from .manager import ConfigManager
from .models import KioskTarget, Orientation, SystemDisplayState
from .schema import Settings, TargetSpec
from .store import KioskStore

__all__ = [
    "ConfigManager", "KioskStore", "KioskTarget", "Orientation",
    "Settings", "SystemDisplayState", "TargetSpec",
]
