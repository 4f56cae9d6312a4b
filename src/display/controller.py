"""Orientation controller: apply, verify and persist display rotation."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

from common.exceptions import (
    ToolUnavailableError, UnknownOrientationError, VerificationFailedError, WaitTimeoutError
)
from common.retry import RetryPolicy, retry
from config.models import Orientation, SystemDisplayState
from config.store import KioskStore
from .wlr import OutputInfo


@dataclass
class AppliedOrientation:
    """Result of a successful apply."""
    output_identifier: str
    orientation: Orientation
    changed: bool
    substituted_from: Optional[Any] = None

    @property
    def substituted(self) -> bool:
        return self.substituted_from is not None

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "output": self.output_identifier,
            "orientation": self.orientation.canonical,
            "label": self.orientation.label,
            "changed": self.changed,
            "substituted_from": None if self.substituted_from is None else str(self.substituted_from),
        }


class OrientationController:
    """Translates orientation requests into verified display transforms."""

    def __init__(
        self,
        tool,
        ready_policy: RetryPolicy = RetryPolicy(interval=1, max_wait=30),
        settle_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize controller.

        ``tool`` provides ``is_ready``, ``list_outputs`` and ``set_transform``
        (see ``display.wlr.WlrRandr``).
        """
        self.tool = tool
        self.ready_policy = ready_policy
        self.settle_delay = settle_delay
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    async def wait_until_ready(self) -> None:
        """Block until the transform tool answers.

        Raises:
            ToolUnavailableError: if it is still not ready after the policy's budget.
        """
        def log_wait(attempt: int, remaining: float) -> None:
            self.logger.info(f"Waiting for display tool... ({remaining:g} seconds left)")

        try:
            await retry(self.tool.is_ready, self.ready_policy, sleep=self.sleep, on_wait=log_wait)
        except WaitTimeoutError as e:
            raise ToolUnavailableError(
                f"Display tool not ready after {self.ready_policy.max_wait:g} seconds"
            ) from e

    async def outputs(self) -> List[OutputInfo]:
        return await self.tool.list_outputs()

    async def _find_output(self, output_identifier: str) -> Optional[OutputInfo]:
        for output in await self.tool.list_outputs():
            if output.name == output_identifier:
                return output
        return None

    async def current(self, output_identifier: str) -> Optional[Orientation]:
        """Orientation the tool currently reports for an output."""
        output = await self._find_output(output_identifier)
        return output.orientation if output else None

    async def apply(self, output_identifier: str, orientation: Any) -> AppliedOrientation:
        """Apply an orientation and confirm the tool reports it.

        Applying the orientation that is already active skips the hardware
        call but is still verified.

        Raises:
            UnknownOrientationError: if ``orientation`` is not recognised.
            ToolUnavailableError: if the tool is missing or never becomes ready.
            DisplayToolError: if the tool rejects the change.
            VerificationFailedError: if the reported transform differs afterwards.
        """
        requested = Orientation.normalize(orientation)
        await self.wait_until_ready()

        before = await self._find_output(output_identifier)
        if before is not None and before.transform == requested.transform:
            self.logger.info(f"{output_identifier} already at {requested.label}")
            changed = False
        else:
            if before is None:
                self.logger.warning(f"Output {output_identifier} not listed by display tool")
            self.logger.info(f"Applying rotation {requested.label} to {output_identifier}")
            await self.tool.set_transform(output_identifier, requested.transform)
            changed = True
            if self.settle_delay > 0:
                await self.sleep(self.settle_delay)

        after = await self._find_output(output_identifier)
        actual = after.transform if after else None
        if actual != requested.transform:
            raise VerificationFailedError(output_identifier, requested.transform, actual)

        return AppliedOrientation(output_identifier, requested, changed)

    async def set_and_persist(self, store: KioskStore, output_identifier: str,
                              orientation: Any) -> AppliedOrientation:
        """Apply an orientation and save it as the boot orientation.

        An unrecognised orientation is replaced with PORTRAIT_RIGHT; the
        substitution is reported in the result. Any other failure leaves
        the saved state untouched and propagates.
        """
        substituted_from = None
        try:
            requested = Orientation.normalize(orientation)
        except UnknownOrientationError:
            requested = Orientation.PORTRAIT_RIGHT
            substituted_from = orientation
            self.logger.warning(
                f"Unknown rotation {orientation!r}, using {requested.canonical} instead"
            )

        applied = await self.apply(output_identifier, requested)
        await store.save_display_state(SystemDisplayState(
            output_identifier=output_identifier,
            saved_orientation=applied.orientation,
        ))
        applied.substituted_from = substituted_from
        self.logger.info(f"Applied and saved {applied.orientation.label} for {output_identifier}")
        return applied

    async def restore(self, store: KioskStore) -> AppliedOrientation:
        """Re-apply the saved orientation, e.g. at boot."""
        state = await store.load_display_state()
        self.logger.info(
            f"Restoring rotation {state.saved_orientation.label} on {state.output_identifier}"
        )
        return await self.set_and_persist(store, state.output_identifier, state.saved_orientation)
