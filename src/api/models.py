"""Pydantic models for the control API."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class OrientationRequest(BaseModel):
    """Request to change an orientation."""
    orientation: Union[int, str] = Field(..., description="Rotation in degrees or an alias such as 'portrait'")


class APIResponse(BaseModel):
    """Generic API response."""
    success: bool
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    data: Optional[Dict[str, Any]] = None


class TargetStatus(BaseModel):
    """Session state of one target."""
    id: str
    display_name: str
    url: str
    preferred_orientation: str
    state: str


class KioskStatus(BaseModel):
    """Kiosk status response."""
    active_target: Optional[str]
    targets: List[TargetStatus]
    timestamp: datetime = Field(default_factory=datetime.now)


class DisplayOrientation(BaseModel):
    """Display orientation response."""
    output: str
    saved_orientation: str
    current_orientation: Optional[str] = None
    error: Optional[str] = None
