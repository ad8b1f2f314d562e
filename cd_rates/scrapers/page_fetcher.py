# cd_rates/scrapers/page_fetcher.py

"""Fetches bank pages and checks them for the rate table."""

import json
import logging
import random
import time
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from cd_rates.config.settings import Settings
from cd_rates.models.target import Target


def load_selectors(settings: Settings, profile: str) -> dict[str, str]:
    """Load the CSS selector profile from selectors.json."""
    with open(settings.SELECTORS_PATH) as f:
        all_selectors: dict[str, Any] = json.load(f)
    result: dict[str, str] = all_selectors.get(profile, {})
    return result


class PageFetcher:
    """Retrieves one target page at a time over a shared session.

    Every failure mode (HTTP errors, timeouts, challenge pages, a page
    without the rate table) is reported as ``None`` so the caller can
    move on to the next target.
    """

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(
        self,
        settings: Settings | None = None,
        selectors: dict[str, str] | None = None,
    ) -> None:
        self.logger = logging.getLogger("cd_rates.fetcher")
        self.settings = settings or Settings()
        self.selectors = selectors or load_selectors(
            self.settings, self.settings.SELECTOR_PROFILE
        )
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._current_delay: float = self.settings.REQUEST_DELAY

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()

    def _wait(self) -> None:
        """Sleep the current delay plus a random human-like jitter."""
        jitter = random.uniform(0, self.settings.REQUEST_JITTER)
        time.sleep(self._current_delay + jitter)

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, max_delay)
        self.logger.warning(
            "Rate-limited, delay escalated to %.1fs",
            self._current_delay,
        )

    def _validate_response(self, text: str) -> bool:
        """Check for Cloudflare challenge pages and CAPTCHA indicators."""
        lower = text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "Cloudflare challenge detected (marker: '%s')",
                    marker,
                )
                return False

        # Skip the keyword scan on real pages to avoid false positives
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "CAPTCHA keyword '%s' detected", keyword
                    )
                    return False
        return True

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
    ) -> str | None:
        """GET with retries and adaptive delay; returns the body text."""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=self.settings.REQUEST_TIMEOUT,
                )
                if resp.status_code == 200:
                    if not self._validate_response(resp.text):
                        self._escalate_delay()
                        time.sleep(self._current_delay)
                        continue
                    self._current_delay = self.settings.REQUEST_DELAY
                    return str(resp.text)
                self.logger.warning(
                    "HTTP %d on attempt %d for %s",
                    resp.status_code,
                    attempt + 1,
                    url,
                )
                if resp.status_code in (429, 403):
                    self._escalate_delay()
                    time.sleep(self._current_delay)
            except Exception as exc:
                self.logger.warning(
                    "Request error on attempt %d for %s: %s",
                    attempt + 1,
                    url,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * (attempt + 1))
        return None

    def _fetch_fallback(
        self,
        url: str,
        headers: dict[str, str],
    ) -> str | None:
        """Last resort: cloudscraper's JS challenge solver."""
        self.logger.info(
            "curl_cffi exhausted for %s, falling back to cloudscraper",
            url,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            if resp.status_code == 200 and self._validate_response(
                str(resp.text)
            ):
                return str(resp.text)
            self.logger.warning(
                "cloudscraper returned HTTP %d for %s",
                resp.status_code,
                url,
            )
        except Exception as exc:
            self.logger.error(
                "cloudscraper fallback also failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
        return None

    def has_marker(self, soup: BeautifulSoup) -> bool:
        """Return True when the page contains the rate table marker."""
        return soup.select_one(self.selectors["marker"]) is not None

    def fetch(self, target: Target) -> BeautifulSoup | None:
        """Fetch a target page, or ``None`` when it has no usable rate table."""
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": target.url,
        }
        try:
            self._wait()
            text = self._fetch_get(target.url, headers)
            if text is None:
                text = self._fetch_fallback(target.url, headers)
            if text is None:
                self.logger.warning(
                    "[%s] Page could not be fetched, skipping",
                    target.name,
                )
                return None

            soup = BeautifulSoup(text, "lxml")
            if not self.has_marker(soup):
                self.logger.warning(
                    "[%s] No CD table found, skipping", target.name
                )
                return None
            self.logger.info("[%s] CD table found", target.name)
            return soup
        except Exception as exc:
            self.logger.error(
                "[%s] Unexpected error while fetching %s: %s",
                target.name,
                target.url,
                exc,
                exc_info=True,
            )
            return None
