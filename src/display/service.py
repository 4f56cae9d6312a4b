"""Boot-time service that restores the saved display rotation."""

import asyncio
import logging
from typing import Awaitable, Callable

from common.exceptions import KioskError
from config.store import KioskStore
from .controller import AppliedOrientation, OrientationController


class RotationService:
    """Re-applies the persisted orientation once the compositor is up."""

    def __init__(
        self,
        controller: OrientationController,
        store: KioskStore,
        boot_settle_delay: float = 5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize rotation service."""
        self.logger = logging.getLogger(__name__)
        self.controller = controller
        self.store = store
        self.boot_settle_delay = boot_settle_delay
        self.sleep = sleep

    async def start(self) -> AppliedOrientation:
        """Wait for the display tool, let the compositor settle, then restore.

        Raises:
            OrientationError: if the tool never becomes ready or the transform
                cannot be applied and verified.
            StoreError: if the display record cannot be read or written.
        """
        self.logger.info("Starting rotation persistence service")
        try:
            await self.controller.wait_until_ready()

            # Compositor reports ready before outputs are fully configured
            if self.boot_settle_delay > 0:
                self.logger.info(f"Waiting {self.boot_settle_delay:g}s for display to settle")
                await self.sleep(self.boot_settle_delay)

            outputs = await self.controller.outputs()
            self.logger.info(f"Outputs: {', '.join(o.name for o in outputs) or 'none'}")

            applied = await self.controller.restore(self.store)
        except KioskError as e:
            self.logger.error(f"Failed to restore rotation: {e}")
            raise

        self.logger.info(f"Rotation {applied.orientation.label} restored on {applied.output_identifier}")
        return applied
