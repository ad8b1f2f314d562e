# cd_rates/services/health_checker.py

"""Connectivity check for the configured bank pages."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup

from cd_rates.models.target import Target
from cd_rates.scrapers.page_fetcher import PageFetcher

logger = logging.getLogger("cd_rates.health")

_HEALTH_TIMEOUT = 10  # seconds per target
_SLOW_MS = 5000


@dataclass
class HealthResult:
    """Result of a single target health check."""

    target: str
    status: str  # "ok", "slow", "no_table", "down"
    latency_ms: float
    message: str


def probe_target(target: Target, fetcher: PageFetcher) -> HealthResult:
    """Issue one GET to a target page and classify the response."""
    start = time.monotonic()
    try:
        headers = {
            **fetcher.settings.DEFAULT_HEADERS,
            "Referer": target.url,
        }
        resp: Any = fetcher.session.get(
            target.url, headers=headers, timeout=_HEALTH_TIMEOUT,
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        if resp.status_code != 200:
            return HealthResult(
                target=target.name,
                status="down",
                latency_ms=elapsed_ms,
                message=f"HTTP {resp.status_code}",
            )

        if not fetcher.has_marker(BeautifulSoup(resp.text, "lxml")):
            return HealthResult(
                target=target.name,
                status="no_table",
                latency_ms=elapsed_ms,
                message="CD table not found",
            )

        if elapsed_ms > _SLOW_MS:
            return HealthResult(
                target=target.name,
                status="slow",
                latency_ms=elapsed_ms,
                message="High latency",
            )

        return HealthResult(
            target=target.name,
            status="ok",
            latency_ms=elapsed_ms,
            message="",
        )

    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            target=target.name,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )


class HealthChecker:
    """Runs concurrent health probes against all targets."""

    def __init__(
        self,
        targets: list[Target],
        fetcher_factory: Callable[[], PageFetcher] = PageFetcher,
    ) -> None:
        self.targets = targets
        self.fetcher_factory = fetcher_factory

    async def check_all(self) -> list[HealthResult]:
        """Probe every target concurrently, one session per probe."""
        tasks = [
            asyncio.to_thread(
                probe_target, target, self.fetcher_factory()
            )
            for target in self.targets
        ]
        results: list[HealthResult] = list(await asyncio.gather(*tasks))
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.target,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
