"""Kiosk session state definitions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionState(Enum):
    """Lifecycle of one kiosk target's session."""
    STOPPED = "stopped"
    STARTING = "starting"
    WAITING_NETWORK = "waiting_network"
    RUNNING = "running"

    @property
    def is_active(self) -> bool:
        return self is not SessionState.STOPPED


# systemctl is-active output
UNIT_STATES = {
    "active": SessionState.RUNNING,
    "reloading": SessionState.RUNNING,
    "activating": SessionState.STARTING,
}


def session_state_from_unit(unit_state: str) -> SessionState:
    return UNIT_STATES.get(unit_state.strip().lower(), SessionState.STOPPED)


@dataclass
class ActivationResult:
    """Outcome of activating (or launching) one target."""
    target_id: str
    orientation: Optional[Any] = None
    network_ready: bool = True
    stale_terminated: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target_id": self.target_id,
            "orientation": self.orientation.to_dict() if self.orientation else None,
            "network_ready": self.network_ready,
            "stale_terminated": self.stale_terminated,
            "warnings": list(self.warnings),
        }
