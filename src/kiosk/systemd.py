"""Thin wrapper around ``systemctl`` for the kiosk units."""

import logging
import subprocess
from typing import List

from common.exceptions import ServiceManagerError

# systemctl exit status for "unit not loaded"
UNIT_NOT_LOADED = 5


class ServiceManager:
    """Controls systemd units, by default in the user's service manager."""

    def __init__(self, user: bool = True, command_timeout: float = 30):
        """Initialize service manager."""
        self.user = user
        self.command_timeout = command_timeout
        self.logger = logging.getLogger(__name__)

    def _command(self, args: List[str]) -> List[str]:
        cmd = ["systemctl"]
        if self.user:
            cmd.append("--user")
        return cmd + list(args)

    def _systemctl(self, *args: str, unit: str = None) -> subprocess.CompletedProcess:
        cmd = self._command(list(args))
        self.logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.command_timeout)
        except FileNotFoundError as e:
            raise ServiceManagerError("systemctl not found", unit=unit) from e
        except subprocess.TimeoutExpired as e:
            raise ServiceManagerError(
                f"{' '.join(cmd)} timed out after {self.command_timeout}s", unit=unit
            ) from e

    def _check(self, action: str, unit: str, result: subprocess.CompletedProcess) -> None:
        if result.returncode != 0:
            raise ServiceManagerError(
                f"Failed to {action} {unit}: {result.stderr.strip() or f'exit {result.returncode}'}",
                unit=unit,
                stderr=result.stderr,
            )

    async def daemon_reload(self) -> None:
        result = self._systemctl("daemon-reload")
        self._check("reload", "service manager", result)

    async def enable(self, unit: str) -> None:
        self.logger.info(f"Enabling {unit}")
        self._check("enable", unit, self._systemctl("enable", unit, unit=unit))

    async def disable(self, unit: str) -> None:
        self.logger.info(f"Disabling {unit}")
        self._check("disable", unit, self._systemctl("disable", unit, unit=unit))

    async def start(self, unit: str) -> None:
        self.logger.info(f"Starting {unit}")
        self._check("start", unit, self._systemctl("start", unit, unit=unit))

    async def stop(self, unit: str) -> None:
        """Stop a unit; stopping one that is not loaded is not an error."""
        self.logger.info(f"Stopping {unit}")
        result = self._systemctl("stop", unit, unit=unit)
        if result.returncode == UNIT_NOT_LOADED:
            self.logger.debug(f"{unit} not loaded, nothing to stop")
            return
        self._check("stop", unit, result)

    async def restart(self, unit: str) -> None:
        self.logger.info(f"Restarting {unit}")
        self._check("restart", unit, self._systemctl("restart", unit, unit=unit))

    async def state(self, unit: str) -> str:
        """Raw ``is-active`` state: active, inactive, activating, failed..."""
        result = self._systemctl("is-active", unit, unit=unit)
        return result.stdout.strip() or "unknown"

    async def is_active(self, unit: str) -> bool:
        return await self.state(unit) == "active"

