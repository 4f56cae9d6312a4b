"""Tests for the Chromium controller."""

from pathlib import Path
from unittest.mock import Mock, patch

import psutil
import pytest

from common.exceptions import BrowserError
from config.schema import BrowserConfig
from kiosk.browser import BrowserController


def fake_process(pid, name, cmdline):
    proc = Mock(spec=psutil.Process)
    proc.pid = pid
    proc.info = {"pid": pid, "name": name, "cmdline": cmdline}
    proc.children.return_value = []
    return proc


class TestCommand:

    def test_kiosk_flags_and_profile(self):
        browser = BrowserController(BrowserConfig(binary="chromium", extra_flags=["--incognito"]))

        cmd = browser.build_command("http://uptime.local", Path("/home/pi/.config/chrome-kiosk-kuma"))

        assert cmd[0] == "chromium"
        assert cmd[-1] == "http://uptime.local"
        for flag in ["--kiosk", "--noerrdialogs", "--disable-session-crashed-bubble", "--no-first-run",
                     "--incognito", "--user-data-dir=/home/pi/.config/chrome-kiosk-kuma"]:
            assert flag in cmd
        assert cmd.index("--incognito") < len(cmd) - 1

    @patch("kiosk.browser.shutil.which")
    def test_auto_detects_binary(self, mock_which):
        mock_which.side_effect = lambda name: "/usr/bin/chromium" if name == "chromium" else None

        assert BrowserController(BrowserConfig()).chromium_binary == "chromium"

    @patch("kiosk.browser.shutil.which", return_value=None)
    def test_falls_back_to_chromium_browser(self, mock_which):
        assert BrowserController(BrowserConfig()).chromium_binary == "chromium-browser"


class TestLifecycle:

    @patch("kiosk.browser.subprocess.Popen")
    async def test_start_creates_profile_and_process_group(self, mock_popen, tmp_path):
        mock_popen.return_value.pid = 1234
        mock_popen.return_value.poll.return_value = None
        browser = BrowserController(BrowserConfig(binary="chromium"), env={"DISPLAY": ":0"})

        pid = await browser.start("http://kibana.local", tmp_path / "chrome-kiosk-kibana")

        assert pid == 1234
        assert (tmp_path / "chrome-kiosk-kibana").is_dir()
        kwargs = mock_popen.call_args[1]
        assert kwargs["env"]["DISPLAY"] == ":0"
        assert kwargs["preexec_fn"] is not None
        assert mock_popen.call_args[0][0][-1] == "http://kibana.local"

    @patch("kiosk.browser.subprocess.Popen", side_effect=FileNotFoundError("chromium"))
    async def test_start_failure(self, mock_popen, tmp_path):
        browser = BrowserController(BrowserConfig(binary="chromium"))

        with pytest.raises(BrowserError):
            await browser.start("http://kibana.local", tmp_path / "profile")

    async def test_wait_returns_exit_status(self):
        browser = BrowserController(BrowserConfig(binary="chromium"))
        browser.process = Mock()
        browser.process.poll.side_effect = [None, 1]
        browser.process.returncode = 1

        assert await browser.wait(poll_interval=0) == 1

    async def test_wait_without_start(self):
        with pytest.raises(BrowserError):
            await BrowserController(BrowserConfig()).wait()


class TestStaleProcesses:

    @patch("kiosk.browser.psutil.wait_procs")
    @patch("kiosk.browser.psutil.process_iter")
    async def test_terminates_only_kiosk_browsers(self, mock_iter, mock_wait):
        stale = fake_process(100, "chromium-browser", ["chromium-browser", "--kiosk", "http://old"])
        desktop = fake_process(200, "chromium", ["chromium", "https://example.com"])
        other = fake_process(300, "python3", ["python3", "--kiosk"])
        mock_iter.return_value = [stale, desktop, other]
        mock_wait.return_value = ([stale], [])

        count = await BrowserController(BrowserConfig()).terminate_stale()

        assert count == 1
        stale.terminate.assert_called_once()
        desktop.terminate.assert_not_called()
        other.terminate.assert_not_called()

    @patch("kiosk.browser.psutil.wait_procs")
    @patch("kiosk.browser.psutil.process_iter")
    async def test_kills_survivors(self, mock_iter, mock_wait):
        stale = fake_process(100, "chromium", ["chromium", "--kiosk", "http://old"])
        mock_iter.return_value = [stale]
        mock_wait.return_value = ([], [stale])

        await BrowserController(BrowserConfig(stale_kill_timeout=1)).terminate_stale()

        stale.kill.assert_called_once()
        assert mock_wait.call_args[1]["timeout"] == 1

    @patch("kiosk.browser.psutil.process_iter", return_value=[])
    async def test_nothing_to_terminate(self, mock_iter):
        assert await BrowserController(BrowserConfig()).terminate_stale() == 0
