"""Kiosk sessions: target switching, launcher and browser control."""

from .browser import BrowserController
from .manager import KioskSupervisor
from .network import NetworkProbe
from .provision import Provisioner
from .service import KioskService
from .states import ActivationResult, SessionState
from .systemd import ServiceManager

__all__ = [
    "ActivationResult", "BrowserController", "KioskService", "KioskSupervisor",
    "NetworkProbe", "Provisioner", "ServiceManager", "SessionState",
]
