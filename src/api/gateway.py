"""HTTP control API for the kiosk."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException

from common.exceptions import (
    DisplayToolError, KioskError, OrientationError, TargetNotConfiguredError,
    TargetNotFoundError, ToolUnavailableError, UnknownOrientationError, VerificationFailedError
)
from display.controller import OrientationController
from kiosk.manager import KioskSupervisor
from .models import (
    APIResponse, DisplayOrientation, KioskStatus, OrientationRequest, TargetStatus
)

STATUS_CODES = [
    (TargetNotFoundError, 404),
    (TargetNotConfiguredError, 409),
    (UnknownOrientationError, 422),
    (ToolUnavailableError, 503),
    (VerificationFailedError, 502),
    (DisplayToolError, 502),
]


def http_error(error: KioskError) -> HTTPException:
    """Map a kiosk error onto an HTTP error response."""
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


class APIGateway:
    """Routes HTTP requests to the kiosk supervisor."""

    def __init__(self, supervisor: KioskSupervisor, controller: OrientationController):
        """Initialize API gateway."""
        self.supervisor = supervisor
        self.controller = controller
        self.store = supervisor.store
        self.logger = logging.getLogger(__name__)

        self.app = self._create_app()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title="Kiosk API",
            description="Control API for the rotating multi-target kiosk",
            version="1.0.0",
        )

    def _setup_routes(self) -> None:
        """Set up API routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now()}

        @self.app.get("/api/v1/kiosk/status", response_model=KioskStatus)
        async def get_kiosk_status():
            """Get per-target session state."""
            try:
                states = await self.supervisor.status()
                targets = []
                active = None
                for target_id, state in states.items():
                    target = await self.store.load_target(target_id)
                    targets.append(TargetStatus(
                        id=target.id,
                        display_name=target.label,
                        url=target.url,
                        preferred_orientation=target.preferred_orientation.canonical,
                        state=state.value,
                    ))
                    if active is None and state.is_active:
                        active = target_id
                return KioskStatus(active_target=active, targets=targets)
            except KioskError as e:
                raise http_error(e)

        @self.app.post("/api/v1/kiosk/deactivate-all", response_model=APIResponse)
        async def deactivate_all():
            """Stop every kiosk."""
            try:
                stopped = await self.supervisor.deactivate_all()
            except KioskError as e:
                raise http_error(e)
            return APIResponse(success=True, message="All kiosks stopped", data={"targets": stopped})

        @self.app.post("/api/v1/kiosk/restart", response_model=APIResponse)
        async def restart_kiosk():
            """Restart the active kiosk."""
            try:
                target_id = await self.supervisor.restart_active()
            except KioskError as e:
                raise http_error(e)
            if target_id is None:
                return APIResponse(success=False, message="No active kiosk")
            return APIResponse(success=True, message=f"Kiosk {target_id} restarted",
                               data={"target_id": target_id})

        @self.app.post("/api/v1/kiosk/{target_id}/activate", response_model=APIResponse)
        async def activate_kiosk(target_id: str):
            """Switch to a kiosk target."""
            try:
                result = await self.supervisor.activate(target_id)
            except KioskError as e:
                self.logger.error(f"Activation of {target_id} failed: {e}")
                raise http_error(e)
            return APIResponse(success=True, message=f"Kiosk {target_id} activated", data=result.to_dict())

        @self.app.post("/api/v1/kiosk/{target_id}/deactivate", response_model=APIResponse)
        async def deactivate_kiosk(target_id: str):
            """Stop one kiosk target."""
            try:
                await self.supervisor.deactivate(target_id)
            except KioskError as e:
                raise http_error(e)
            return APIResponse(success=True, message=f"Kiosk {target_id} stopped")

        @self.app.put("/api/v1/kiosk/{target_id}/orientation", response_model=APIResponse)
        async def set_target_orientation(target_id: str, request: OrientationRequest):
            """Change a target's preferred orientation."""
            try:
                applied = await self.supervisor.set_target_orientation(target_id, request.orientation)
            except KioskError as e:
                raise http_error(e)
            return APIResponse(
                success=True,
                message=f"Rotation for {target_id} updated",
                data={"applied": applied.to_dict() if applied else None},
            )

        @self.app.get("/api/v1/display/orientation", response_model=DisplayOrientation)
        async def get_display_orientation():
            """Saved and currently reported orientation."""
            try:
                state = await self.store.load_display_state()
            except KioskError as e:
                raise http_error(e)

            current: Optional[str] = None
            error: Optional[str] = None
            try:
                orientation = await self.controller.current(state.output_identifier)
                current = orientation.canonical if orientation else None
            except OrientationError as e:
                error = str(e)

            return DisplayOrientation(
                output=state.output_identifier,
                saved_orientation=state.saved_orientation.canonical,
                current_orientation=current,
                error=error,
            )

        @self.app.put("/api/v1/display/orientation", response_model=APIResponse)
        async def set_display_orientation(request: OrientationRequest):
            """Apply and save the system orientation."""
            try:
                applied = await self.supervisor.set_orientation(request.orientation)
            except KioskError as e:
                raise http_error(e)
            return APIResponse(
                success=True,
                message=f"Rotation set to {applied.orientation.label}",
                data=applied.to_dict(),
            )
