"""Tests for the systemctl wrapper."""

import subprocess
from unittest.mock import patch

import pytest

from common.exceptions import ServiceManagerError
from kiosk.states import SessionState, session_state_from_unit
from kiosk.systemd import ServiceManager


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestServiceManager:

    @patch("kiosk.systemd.subprocess.run", return_value=completed())
    async def test_user_scope(self, mock_run):
        await ServiceManager().start("kiosk-kuma.service")

        assert mock_run.call_args[0][0] == ["systemctl", "--user", "start", "kiosk-kuma.service"]

    @patch("kiosk.systemd.subprocess.run", return_value=completed())
    async def test_system_scope(self, mock_run):
        await ServiceManager(user=False).daemon_reload()

        assert mock_run.call_args[0][0] == ["systemctl", "daemon-reload"]

    @patch("kiosk.systemd.subprocess.run", return_value=completed(1, stderr="Unit not found."))
    async def test_failure_raises(self, mock_run):
        with pytest.raises(ServiceManagerError, match="Unit not found") as exc:
            await ServiceManager().enable("kiosk-kuma.service")
        assert exc.value.unit == "kiosk-kuma.service"

    @patch("kiosk.systemd.subprocess.run", return_value=completed(5))
    async def test_stop_unloaded_unit(self, mock_run):
        await ServiceManager().stop("kiosk-gone.service")

    @patch("kiosk.systemd.subprocess.run", side_effect=FileNotFoundError("systemctl"))
    async def test_missing_systemctl(self, mock_run):
        with pytest.raises(ServiceManagerError):
            await ServiceManager().restart("kiosk-kuma.service")

    @patch("kiosk.systemd.subprocess.run",
           side_effect=subprocess.TimeoutExpired(["systemctl"], 30))
    async def test_timeout(self, mock_run):
        with pytest.raises(ServiceManagerError, match="timed out"):
            await ServiceManager().disable("kiosk-kuma.service")

    @patch("kiosk.systemd.subprocess.run")
    async def test_state(self, mock_run):
        manager = ServiceManager()

        mock_run.return_value = completed(3, stdout="inactive\n")
        assert await manager.state("kiosk-kuma.service") == "inactive"
        assert not await manager.is_active("kiosk-kuma.service")

        mock_run.return_value = completed(0, stdout="active\n")
        assert await manager.is_active("kiosk-kuma.service")

        mock_run.return_value = completed(4)
        assert await manager.state("kiosk-kuma.service") == "unknown"


class TestUnitStates:

    @pytest.mark.parametrize("unit_state, expected", [
        ("active", SessionState.RUNNING),
        ("reloading", SessionState.RUNNING),
        ("activating", SessionState.STARTING),
        ("inactive", SessionState.STOPPED),
        ("failed", SessionState.STOPPED),
        ("unknown", SessionState.STOPPED),
    ])
    def test_mapping(self, unit_state, expected):
        assert session_state_from_unit(unit_state) is expected
