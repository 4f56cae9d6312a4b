"""Browser controller for Chromium kiosk mode."""

import asyncio
import logging
import os
import shutil
import signal
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import psutil

from common.exceptions import BrowserError

BROWSER_BINARIES = ("chromium-browser", "chromium")
BROWSER_PROCESS_NAMES = {"chromium-browser", "chromium", "chrome"}


class BrowserController:
    """Runs one Chromium instance in kiosk mode with a dedicated profile."""

    def __init__(self, config, env: Optional[Dict[str, str]] = None):
        """Initialize browser controller.

        ``config`` is a ``config.schema.BrowserConfig``.
        """
        self.config = config
        self.env = env or {}
        self.logger = logging.getLogger(__name__)

        self.process: Optional[subprocess.Popen] = None
        self.pid: Optional[int] = None
        self._binary: Optional[str] = None

    @property
    def chromium_binary(self) -> str:
        if self._binary is None:
            self._binary = self._get_chromium_binary()
        return self._binary

    def _get_chromium_binary(self) -> str:
        """Get correct Chromium binary for the system."""
        if self.config.binary != "auto":
            return self.config.binary

        for binary in BROWSER_BINARIES:
            if shutil.which(binary):
                self.logger.info(f"Found browser: {binary}")
                return binary

        self.logger.warning("No Chromium binary found on PATH, assuming chromium-browser")
        return BROWSER_BINARIES[0]

    def build_command(self, url: str, profile_dir: Path) -> List[str]:
        """Build Chromium command with kiosk flags."""
        cmd = [
            self.chromium_binary,
            "--kiosk",
            "--noerrdialogs",
            "--disable-session-crashed-bubble",
            "--disable-infobars",
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-translate",
            "--disable-features=TranslateUI,VizDisplayCompositor",
            "--disable-component-update",
            "--check-for-update-interval=31536000",  # Never check for updates
            "--autoplay-policy=no-user-gesture-required",
            "--password-store=basic",  # Avoid keyring prompts
            f"--user-data-dir={profile_dir}",
            "--start-maximized",
            "--force-device-scale-factor=1.0",
        ]
        cmd.extend(self.config.extra_flags)
        cmd.append(url)
        return cmd

    def _environment(self) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(self.env)
        env.setdefault("DISPLAY", ":0")
        return env

    async def start(self, url: str, profile_dir: Path) -> int:
        """Start the browser and return its PID.

        Raises:
            BrowserError: if the binary cannot be executed.
        """
        if self.is_running:
            self.logger.warning("Browser is already running")
            return self.pid

        profile_dir = Path(profile_dir)
        try:
            profile_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BrowserError(f"Cannot create profile directory {profile_dir}: {e}") from e

        cmd = self.build_command(url, profile_dir)
        self.logger.info(f"Starting Chromium with URL: {url}")
        self.logger.debug(f"Command: {' '.join(cmd)}")

        try:
            # Output goes to our stdout/stderr and from there to the journal
            self.process = subprocess.Popen(
                cmd,
                env=self._environment(),
                preexec_fn=os.setsid  # Create new process group
            )
        except OSError as e:
            raise BrowserError(f"Failed to start {cmd[0]}: {e}") from e

        self.pid = self.process.pid
        self.logger.info(f"Browser started with PID: {self.pid}")
        return self.pid

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    async def wait(self, poll_interval: float = 1.0) -> int:
        """Wait for the browser to exit and return its exit status."""
        if self.process is None:
            raise BrowserError("Browser was not started")

        while self.process.poll() is None:
            await asyncio.sleep(poll_interval)

        returncode = self.process.returncode
        if returncode == 0:
            self.logger.info("Browser exited")
        else:
            self.logger.warning(f"Browser exited with status {returncode}")
        return returncode

    async def stop(self) -> None:
        """Stop the browser's whole process group."""
        if not self.is_running:
            return

        self.logger.info("Stopping browser")
        self._signal_group(signal.SIGTERM)
        try:
            self.process.wait(timeout=self.config.stale_kill_timeout)
        except subprocess.TimeoutExpired:
            self.logger.warning("Browser didn't stop gracefully, force killing")
            self._signal_group(signal.SIGKILL)
            self.process.wait(timeout=self.config.stale_kill_timeout)

        self.logger.info("Browser stopped")

    def _signal_group(self, signum: int) -> None:
        try:
            os.killpg(os.getpgid(self.pid), signum)
        except ProcessLookupError:
            pass

    def find_stale(self) -> List[psutil.Process]:
        """Kiosk-mode browser processes other than the one we started."""
        own = self.pid
        stale = []
        for proc in psutil.process_iter(["pid", "name", "cmdline"]):
            try:
                if proc.info["pid"] == own:
                    continue
                if proc.info["name"] not in BROWSER_PROCESS_NAMES:
                    continue
                if "--kiosk" in (proc.info["cmdline"] or []):
                    stale.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return stale

    async def terminate_stale(self) -> int:
        """Terminate leftover kiosk browsers; returns how many were found."""
        procs = self.find_stale()
        if not procs:
            return 0

        for proc in list(procs):
            try:
                procs.extend(proc.children(recursive=True))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                pass

        self.logger.info(f"Terminating stale browser processes: {[p.pid for p in procs]}")
        for proc in procs:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied as e:
                self.logger.warning(f"Cannot terminate browser process {proc.pid}: {e}")

        _, alive = psutil.wait_procs(procs, timeout=self.config.stale_kill_timeout)
        for proc in alive:
            self.logger.warning(f"Browser process {proc.pid} didn't exit, force killing")
            try:
                proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                pass

        return len(procs)

    async def disable_screensaver(self) -> None:
        """Disable screen blanking (X11 only; absent xset is ignored)."""
        env = self._environment()
        for cmd in (["xset", "s", "off"], ["xset", "-dpms"], ["xset", "s", "noblank"]):
            try:
                subprocess.run(cmd, capture_output=True, env=env, timeout=5)
            except (FileNotFoundError, subprocess.TimeoutExpired) as e:
                self.logger.debug(f"Failed to run {cmd}: {e}")

    async def hide_cursor(self) -> None:
        """Hide the mouse cursor after it has been idle."""
        if not shutil.which("unclutter"):
            self.logger.debug("unclutter not installed, cursor stays visible")
            return
        try:
            subprocess.Popen(
                ["unclutter", "-idle", str(self.config.cursor_idle)],
                env=self._environment(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL
            )
        except OSError as e:
            self.logger.debug(f"Failed to hide cursor: {e}")

