"""Shared fixtures and fakes for the kiosk tests."""

from typing import Dict, List, Optional

import pytest

from common.retry import RetryPolicy
from config.models import KioskTarget, Orientation
from config.store import KioskStore
from display.controller import OrientationController
from display.wlr import OutputInfo
from kiosk.manager import KioskSupervisor

KUMA_URL = "http://uptime.example.com/dashboard"
KIBANA_URL = "http://kibana.example.com/app/dashboards"


class FakeDisplayTool:
    """In-memory stand-in for wlr-randr."""

    def __init__(self, outputs=("HDMI-A-1",), ready: bool = True, ready_after: int = 0):
        self.transforms: Dict[str, str] = {name: "normal" for name in outputs}
        self.ready = ready
        self.ready_after = ready_after
        self.ready_calls = 0
        self.set_calls: List[tuple] = []
        self.set_error: Optional[Exception] = None
        self.ignore_set = False

    async def is_ready(self) -> bool:
        self.ready_calls += 1
        return self.ready and self.ready_calls > self.ready_after

    async def list_outputs(self) -> List[OutputInfo]:
        return [
            OutputInfo(name=name, enabled=True, transform=transform)
            for name, transform in self.transforms.items()
        ]

    async def set_transform(self, output: str, transform: str) -> None:
        self.set_calls.append((output, transform))
        if self.set_error:
            raise self.set_error
        if output in self.transforms and not self.ignore_set:
            self.transforms[output] = transform

    async def detect_output(self) -> Optional[str]:
        return next(iter(self.transforms), None)


class FakeServiceManager:
    """Records unit operations and tracks active/enabled units."""

    def __init__(self):
        self.states: Dict[str, str] = {}
        self.enabled = set()
        self.calls: List[tuple] = []
        self.reloads = 0

    async def state(self, unit: str) -> str:
        return self.states.get(unit, "inactive")

    async def is_active(self, unit: str) -> bool:
        return self.states.get(unit) == "active"

    async def start(self, unit: str) -> None:
        self.calls.append(("start", unit))
        self.states[unit] = "active"

    async def stop(self, unit: str) -> None:
        self.calls.append(("stop", unit))
        self.states[unit] = "inactive"

    async def restart(self, unit: str) -> None:
        self.calls.append(("restart", unit))
        self.states[unit] = "active"

    async def enable(self, unit: str) -> None:
        self.calls.append(("enable", unit))
        self.enabled.add(unit)

    async def disable(self, unit: str) -> None:
        self.calls.append(("disable", unit))
        self.enabled.discard(unit)

    async def daemon_reload(self) -> None:
        self.reloads += 1

    def active_units(self) -> List[str]:
        return sorted(unit for unit, state in self.states.items() if state == "active")


class FakeProbe:
    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.calls = 0

    async def is_reachable(self) -> bool:
        self.calls += 1
        return self.reachable


class FakeBrowser:
    def __init__(self, returncode: int = 0, stale: int = 0):
        self.returncode = returncode
        self.stale = stale
        self.terminate_calls = 0
        self.started: List[tuple] = []
        self.stopped = False
        self.screensaver_disabled = False
        self.cursor_hidden = False

    async def terminate_stale(self) -> int:
        self.terminate_calls += 1
        return self.stale

    async def start(self, url, profile_dir) -> int:
        self.started.append((url, profile_dir))
        return 4242

    async def wait(self) -> int:
        return self.returncode

    async def stop(self) -> None:
        self.stopped = True

    async def disable_screensaver(self) -> None:
        self.screensaver_disabled = True

    async def hide_cursor(self) -> None:
        self.cursor_hidden = True


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
    return _sleep


@pytest.fixture
def store(tmp_path) -> KioskStore:
    return KioskStore(tmp_path / "env", legacy_rotation_file=tmp_path / "saved_rotation.conf")


@pytest.fixture
def tool() -> FakeDisplayTool:
    return FakeDisplayTool()


@pytest.fixture
def services() -> FakeServiceManager:
    return FakeServiceManager()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def controller(tool, fake_sleep) -> OrientationController:
    return OrientationController(tool, ready_policy=RetryPolicy(interval=1, max_wait=3), sleep=fake_sleep)


@pytest.fixture
def supervisor(store, controller, services, probe, browser, fake_sleep) -> KioskSupervisor:
    return KioskSupervisor(
        store, controller, services, probe, browser,
        network_policy=RetryPolicy(interval=2, max_wait=60),
        sleep=fake_sleep,
    )


@pytest.fixture
async def seeded(store) -> KioskStore:
    """Store holding kuma (portrait right) and kibana (landscape)."""
    await store.save_target(KioskTarget(
        id="kuma", display_name="Uptime Kuma", url=KUMA_URL,
        preferred_orientation=Orientation.PORTRAIT_RIGHT,
    ))
    await store.save_target(KioskTarget(
        id="kibana", display_name="Kibana", url=KIBANA_URL,
        preferred_orientation=Orientation.LANDSCAPE,
    ))
    await store.save_target(KioskTarget(id="grafana", display_name="Grafana", url=""))
    return store
