"""Kiosk supervisor: keeps exactly one target's session running."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from common.exceptions import (
    ConfigurationError, OrientationError, TargetNotConfiguredError, TargetNotFoundError
)
from common.retry import RetryPolicy
from config.models import KioskTarget, Orientation
from config.store import KioskStore
from display.controller import AppliedOrientation, OrientationController
from .network import wait_for_network
from .states import ActivationResult, SessionState, session_state_from_unit
from .units import unit_name


class KioskSupervisor:
    """Switches between kiosk targets and reports their session state.

    There is no lock: mutual exclusion comes from stopping every other
    target before starting one. Two concurrent activations race and the
    last one to start its unit wins.
    """

    def __init__(
        self,
        store: KioskStore,
        controller: OrientationController,
        services,
        probe,
        browser,
        network_policy: RetryPolicy = RetryPolicy(interval=2, max_wait=60),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize supervisor."""
        self.store = store
        self.controller = controller
        self.services = services
        self.probe = probe
        self.browser = browser
        self.network_policy = network_policy
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

        # Activation phases of this process, overlaid on the unit states
        self._phases: Dict[str, SessionState] = {}

    async def load_configured(self, target_id: str) -> KioskTarget:
        """Load a target and make sure it has something to show.

        Raises:
            TargetNotFoundError: if the target was never provisioned.
            TargetNotConfiguredError: if its URL is empty.
        """
        target = await self.store.load_target(target_id)
        if not target.is_configured:
            raise TargetNotConfiguredError(target_id)
        return target

    async def prepare(self, target: KioskTarget, result: ActivationResult) -> ActivationResult:
        """Per-start preparation shared by activation and the launcher.

        Orientation failures and an unreachable network are recorded as
        warnings; store errors propagate.
        """
        self._phases[target.id] = SessionState.STARTING
        state = await self.store.load_display_state()
        try:
            result.orientation = await self.controller.set_and_persist(
                self.store, state.output_identifier, target.preferred_orientation
            )
        except OrientationError as e:
            self._warn(result, f"Could not set rotation for {target.id}: {e}")

        self._phases[target.id] = SessionState.WAITING_NETWORK
        result.network_ready = await wait_for_network(self.probe, self.network_policy, sleep=self.sleep)
        if not result.network_ready:
            self._warn(result, "Network not reachable, starting anyway")

        result.stale_terminated = await self.browser.terminate_stale()
        return result

    async def activate(self, target_id: str) -> ActivationResult:
        """Make ``target_id`` the only running kiosk.

        Nothing is stopped unless the target exists and is configured.
        """
        target = await self.load_configured(target_id)
        self.logger.info(f"Activating kiosk {target.label} ({target.url})")

        for other in await self.store.list_target_ids():
            if other != target_id:
                await self._stop_unit(other, disable=True)
        await self._stop_unit(target_id, disable=False)

        result = ActivationResult(target_id)
        try:
            await self.prepare(target, result)
            unit = unit_name(target_id)
            await self.services.enable(unit)
            await self.services.start(unit)
        finally:
            self._phases.pop(target_id, None)

        self.logger.info(f"Kiosk {target.label} activated")
        return result

    async def deactivate(self, target_id: str) -> None:
        if not await self.store.has_target(target_id):
            raise TargetNotFoundError(target_id)
        await self._stop_unit(target_id, disable=True)
        self._phases.pop(target_id, None)

    async def deactivate_all(self) -> List[str]:
        target_ids = await self.store.list_target_ids()
        for target_id in target_ids:
            await self._stop_unit(target_id, disable=True)
        self._phases.clear()
        self.logger.info("All kiosks stopped")
        return target_ids

    async def _stop_unit(self, target_id: str, disable: bool) -> None:
        unit = unit_name(target_id)
        if session_state_from_unit(await self.services.state(unit)).is_active:
            await self.services.stop(unit)
        if disable:
            await self.services.disable(unit)

    async def status(self) -> Dict[str, SessionState]:
        """Snapshot of every known target's session state."""
        states = {}
        for target_id in await self.store.list_target_ids():
            if target_id in self._phases:
                states[target_id] = self._phases[target_id]
            else:
                states[target_id] = session_state_from_unit(
                    await self.services.state(unit_name(target_id))
                )
        return states

    async def active_target(self) -> Optional[str]:
        states = await self.status()
        for target_id, state in states.items():
            if state is SessionState.RUNNING:
                return target_id
        for target_id, state in states.items():
            if state.is_active:
                return target_id
        return None

    async def restart_active(self) -> Optional[str]:
        target_id = await self.active_target()
        if target_id is None:
            self.logger.warning("No active kiosk to restart")
            return None
        await self.services.restart(unit_name(target_id))
        return target_id

    async def set_orientation(self, orientation: Any) -> AppliedOrientation:
        """Apply and save the system-wide orientation."""
        state = await self.store.load_display_state()
        return await self.controller.set_and_persist(self.store, state.output_identifier, orientation)

    async def set_target_orientation(self, target_id: str,
                                     orientation: Any) -> Optional[AppliedOrientation]:
        """Change a target's preferred orientation.

        When that target is active the orientation is applied right away.
        """
        new = Orientation.normalize(orientation)
        target = await self.store.load_target(target_id)
        await self.store.save_target(target.model_copy(update={"preferred_orientation": new}))
        self.logger.info(f"Target {target_id} rotation set to {new.label}")

        if await self.active_target() == target_id:
            return await self.set_orientation(new)
        return None

    async def set_all_orientations(self, orientation: Any) -> AppliedOrientation:
        """Set every target and the display to one orientation.

        The active kiosk, if any, is restarted to pick it up.
        """
        new = Orientation.normalize(orientation)
        for target_id in await self.store.list_target_ids():
            target = await self.store.load_target(target_id)
            await self.store.save_target(target.model_copy(update={"preferred_orientation": new}))

        applied = await self.set_orientation(new)
        await self.restart_active()
        return applied

    async def set_url(self, target_id: str, url: str) -> KioskTarget:
        """Replace a target's URL."""
        url = url.strip()
        if url and not url.startswith(("http://", "https://", "file://")):
            raise ConfigurationError("URL must start with http://, https://, or file://")

        target = await self.store.load_target(target_id)
        updated = target.model_copy(update={"url": url})
        await self.store.save_target(updated)
        self.logger.info(f"Target {target_id} URL set to {url or '(empty)'}")
        return updated

    def _warn(self, result: ActivationResult, message: str) -> None:
        self.logger.warning(message)
        result.warnings.append(message)
