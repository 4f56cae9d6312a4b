"""Tests for the per-target launcher."""

import logging

import pytest

from common.exceptions import TargetNotConfiguredError, TargetNotFoundError
from kiosk.service import KioskService, exit_status

from conftest import KUMA_URL, FakeBrowser, FakeProbe


def make_service(supervisor, browser, target_id="kuma", tmp_path=None, **kwargs):
    return KioskService(supervisor, browser, target_id, tmp_path / f"chrome-kiosk-{target_id}",
                        sleep=supervisor.sleep, **kwargs)


class TestKioskService:

    async def test_run_prepares_then_runs_browser(self, supervisor, seeded, browser, tool, tmp_path, sleeps):
        service = make_service(supervisor, browser, tmp_path=tmp_path)

        returncode = await service.run()

        assert returncode == 0
        assert sleeps[0] == 5
        assert tool.transforms["HDMI-A-1"] == "270"
        assert browser.terminate_calls == 1
        assert browser.screensaver_disabled and browser.cursor_hidden
        assert browser.started == [(KUMA_URL, tmp_path / "chrome-kiosk-kuma")]

    async def test_browser_exit_status_returned(self, supervisor, seeded, tmp_path):
        browser = FakeBrowser(returncode=-11)
        service = make_service(supervisor, browser, tmp_path=tmp_path, startup_delay=0)

        assert await service.run() == -11
        assert exit_status(-11) == 139
        assert exit_status(3) == 3

    async def test_unconfigured_target_never_starts_browser(self, supervisor, seeded, browser, tmp_path):
        service = make_service(supervisor, browser, target_id="grafana", tmp_path=tmp_path)

        with pytest.raises(TargetNotConfiguredError):
            await service.run()
        assert browser.started == []

    async def test_unknown_target(self, supervisor, seeded, browser, tmp_path):
        service = make_service(supervisor, browser, target_id="jenkins", tmp_path=tmp_path)

        with pytest.raises(TargetNotFoundError):
            await service.run()

    async def test_starts_despite_network_and_rotation_failures(self, supervisor, seeded, browser,
                                                                tool, tmp_path, caplog):
        supervisor.probe = FakeProbe(reachable=False)
        tool.ready = False
        service = make_service(supervisor, browser, tmp_path=tmp_path)

        with caplog.at_level(logging.WARNING):
            await service.run()

        assert len(browser.started) == 1
        assert "Continuing despite" in caplog.text

    async def test_unparseable_display_record_still_starts_browser(self, supervisor, seeded,
                                                                   browser, tool, tmp_path):
        seeded.env_dir.mkdir(parents=True, exist_ok=True)
        seeded.display_path.write_text("SAVED_ROTATION 90\n")
        service = make_service(supervisor, browser, tmp_path=tmp_path)

        assert await service.run() == 0

        assert browser.started == [(KUMA_URL, tmp_path / "chrome-kiosk-kuma")]
        assert tool.transforms["HDMI-A-1"] == "270"

    async def test_options_disable_desktop_tweaks(self, supervisor, seeded, browser, tmp_path):
        service = make_service(supervisor, browser, tmp_path=tmp_path,
                               disable_screensaver=False, hide_cursor=False)

        await service.run()

        assert not browser.screensaver_disabled
        assert not browser.cursor_hidden

    async def test_stop_during_startup_skips_browser(self, supervisor, seeded, browser, tmp_path):
        service = make_service(supervisor, browser, tmp_path=tmp_path)
        await service.stop()

        assert await service.run() == 0
        assert browser.started == []
        assert browser.stopped
