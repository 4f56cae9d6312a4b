"""Network reachability checks."""

import asyncio
import logging
import subprocess
from typing import Awaitable, Callable, List, Optional

import aiohttp

from common.exceptions import WaitTimeoutError
from common.retry import RetryPolicy, retry

logger = logging.getLogger(__name__)


class NetworkProbe:
    """Decides whether the dashboards are likely reachable.

    An HTTP probe is tried first; ICMP ping against well-known addresses is
    the fallback for networks that block the probe URL.
    """

    def __init__(self, probe_urls: Optional[List[str]] = None,
                 probe_hosts: Optional[List[str]] = None, probe_timeout: float = 2):
        self.probe_urls = list(probe_urls or [])
        self.probe_hosts = list(probe_hosts or [])
        self.probe_timeout = probe_timeout
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config) -> "NetworkProbe":
        return cls(config.probe_urls, config.probe_hosts, config.probe_timeout)

    async def check_http(self) -> bool:
        if not self.probe_urls:
            return False

        timeout = aiohttp.ClientTimeout(total=self.probe_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                for url in self.probe_urls:
                    try:
                        async with session.get(url, allow_redirects=False) as response:
                            if response.status < 400:
                                return True
                    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                        self.logger.debug(f"HTTP probe {url} failed: {e}")
        except aiohttp.ClientError as e:
            self.logger.debug(f"HTTP probe failed: {e}")
        return False

    async def check_ping(self) -> bool:
        wait = str(max(1, int(self.probe_timeout)))
        for host in self.probe_hosts:
            try:
                result = subprocess.run(
                    ["ping", "-c", "1", "-W", wait, host],
                    capture_output=True,
                    text=True,
                    timeout=self.probe_timeout + 3,
                )
            except (FileNotFoundError, subprocess.TimeoutExpired) as e:
                self.logger.debug(f"Ping {host} failed: {e}")
                continue
            if result.returncode == 0:
                return True
        return False

    async def is_reachable(self) -> bool:
        if await self.check_http():
            return True
        return await self.check_ping()


async def wait_for_network(
    probe,
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """Wait until ``probe`` reports the network reachable.

    Returns False instead of raising when the budget runs out.
    """
    def log_wait(attempt: int, remaining: float) -> None:
        logger.info(f"Waiting for network... ({remaining:g} seconds left)")

    try:
        await retry(probe.is_reachable, policy, sleep=sleep, on_wait=log_wait)
    except WaitTimeoutError as e:
        logger.warning(f"Network not reachable after {policy.max_wait:g} seconds ({e})")
        return False

    logger.info("Network is reachable")
    return True
