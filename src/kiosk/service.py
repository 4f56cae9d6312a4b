"""Kiosk launcher.

Runs as the ``ExecStart`` of ``kiosk-<id>.service``: prepares the display
and network, then keeps Chromium in the foreground and exits with its
status so systemd can restart it.
"""

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Awaitable, Callable

from .manager import KioskSupervisor
from .states import ActivationResult


class KioskService:
    """Launcher for one kiosk target."""

    def __init__(
        self,
        supervisor: KioskSupervisor,
        browser,
        target_id: str,
        profile_dir: Path,
        startup_delay: float = 5,
        disable_screensaver: bool = True,
        hide_cursor: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize launcher."""
        self.supervisor = supervisor
        self.browser = browser
        self.target_id = target_id
        self.profile_dir = Path(profile_dir)
        self.startup_delay = startup_delay
        self.disable_screensaver = disable_screensaver
        self.hide_cursor = hide_cursor
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)
        self.stopping = False

    async def run(self) -> int:
        """Prepare and run the browser; returns the browser's exit status.

        Raises:
            TargetNotFoundError: if the target was never provisioned.
            TargetNotConfiguredError: if its URL is empty.
            BrowserError: if Chromium cannot be started.
        """
        self.logger.info("=" * 60)
        self.logger.info(f"Starting kiosk launcher for {self.target_id}")
        self.logger.info(f"PID: {os.getpid()}")
        self.logger.info(f"DISPLAY: {os.environ.get('DISPLAY', 'not set')}")
        self.logger.info(f"WAYLAND_DISPLAY: {os.environ.get('WAYLAND_DISPLAY', 'not set')}")
        self.logger.info("=" * 60)

        target = await self.supervisor.load_configured(self.target_id)

        # Let the desktop finish coming up after login
        if self.startup_delay > 0:
            self.logger.info(f"Waiting {self.startup_delay:g}s before starting")
            await self.sleep(self.startup_delay)

        result = ActivationResult(target.id)
        await self.supervisor.prepare(target, result)
        for warning in result.warnings:
            self.logger.warning(f"Continuing despite: {warning}")

        if self.disable_screensaver:
            await self.browser.disable_screensaver()
        if self.hide_cursor:
            await self.browser.hide_cursor()

        if self.stopping:
            return 0

        await self.browser.start(target.url, self.profile_dir)
        returncode = await self.browser.wait()
        if self.stopping:
            return 0
        return returncode

    async def stop(self) -> None:
        """Stop the kiosk launcher."""
        self.logger.info(f"Stopping kiosk launcher for {self.target_id}")
        self.stopping = True
        await self.browser.stop()

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        self.logger.info(f"Received {signal.Signals(signum).name}")
        asyncio.create_task(self.stop())

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)


def exit_status(returncode: int) -> int:
    """Map a child exit status onto our own (signals become 128+n)."""
    if returncode < 0:
        return 128 - returncode
    return returncode

