"""Display orientation control."""

from .controller import AppliedOrientation, OrientationController
from .service import RotationService
from .wlr import OutputInfo, WlrRandr

__all__ = [
    "AppliedOrientation", "OrientationController", "OutputInfo",
    "RotationService", "WlrRandr",
]
