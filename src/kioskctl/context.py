"""Builds the kiosk components from settings."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from common.retry import RetryPolicy
from config.manager import ConfigManager
from config.schema import Settings
from config.store import KioskStore
from display.controller import OrientationController
from display.wlr import WlrRandr
from kiosk.browser import BrowserController
from kiosk.manager import KioskSupervisor
from kiosk.network import NetworkProbe
from kiosk.systemd import ServiceManager


@dataclass
class KioskContext:
    """Everything one kioskctl invocation works with."""
    config_manager: ConfigManager
    settings: Settings
    store: KioskStore
    tool: WlrRandr
    controller: OrientationController
    services: ServiceManager
    probe: NetworkProbe
    browser: BrowserController
    supervisor: KioskSupervisor


def build_context(
    config_manager: ConfigManager,
    settings: Settings,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> KioskContext:
    display = settings.display
    environment = settings.session.environment

    store = config_manager.create_store(settings)
    tool = WlrRandr(display.tool_binary, command_timeout=display.command_timeout, env=environment)
    controller = OrientationController(
        tool,
        ready_policy=RetryPolicy(interval=display.tool_poll_interval, max_wait=display.tool_ready_timeout),
        settle_delay=display.settle_delay,
        sleep=sleep,
    )
    services = ServiceManager(user=True)
    probe = NetworkProbe.from_config(settings.network)
    browser = BrowserController(settings.browser, env=environment)
    supervisor = KioskSupervisor(
        store,
        controller,
        services,
        probe,
        browser,
        network_policy=RetryPolicy(interval=settings.network.poll_interval, max_wait=settings.network.timeout),
        sleep=sleep,
    )

    return KioskContext(
        config_manager=config_manager,
        settings=settings,
        store=store,
        tool=tool,
        controller=controller,
        services=services,
        probe=probe,
        browser=browser,
        supervisor=supervisor,
    )
