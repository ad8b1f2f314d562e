# cd_rates/scrapers/history_fetcher.py

"""Fetches per-product APY history from the rates-history endpoint."""

import asyncio
import json
import logging
import math
from collections.abc import Sequence
from typing import Any

from curl_cffi import requests as curl_requests

from cd_rates.config.settings import Settings
from cd_rates.models.rate_record import RateRecord
from cd_rates.models.snapshot import HistoryPoint
from cd_rates.services.gather import gather_settled


def parse_history(payload: Any) -> list[HistoryPoint]:
    """Pair up ``{"Date": [...], "Apy": [...]}`` into history points.

    Mismatched lengths truncate to the shorter list; samples whose APY
    is not a finite number are dropped. Anything that is not the
    expected shape yields an empty list.
    """
    if not isinstance(payload, dict):
        return []
    dates = payload.get("Date")
    apys = payload.get("Apy")
    if not isinstance(dates, list) or not isinstance(apys, list):
        return []

    points: list[HistoryPoint] = []
    for date, apy in zip(dates, apys):
        try:
            value = float(apy)
        except (TypeError, ValueError):
            continue
        if date is None or not math.isfinite(value):
            continue
        points.append(HistoryPoint(date=str(date), apy=value))
    return points


class HistoryFetcher:
    """Retrieves rate history for many products concurrently.

    A failing product never affects the others: errors, bad status
    codes and malformed bodies all degrade to an empty history once
    the retry budget is spent.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session: Any | None = None,
    ) -> None:
        self.logger = logging.getLogger("cd_rates.history")
        self.settings = settings or Settings()
        self.session: Any = session or curl_requests.AsyncSession(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    async def close(self) -> None:
        """Release the underlying async HTTP session."""
        await self.session.close()

    def _url(self, account_id: str) -> str:
        return self.settings.HISTORY_API_TEMPLATE.format(
            account_id=account_id
        )

    async def _attempt(self, url: str) -> list[HistoryPoint] | None:
        """One request; ``None`` means retryable failure."""
        resp = await self.session.get(
            url,
            headers=self.settings.HISTORY_HEADERS,
            timeout=self.settings.HISTORY_TIMEOUT,
        )
        if resp.status_code != 200:
            self.logger.debug(
                "History HTTP %d for %s", resp.status_code, url
            )
            return None
        try:
            payload = json.loads(resp.text)
        except ValueError:
            # Not JSON; retrying won't change the body
            self.logger.debug("History body is not JSON for %s", url)
            return []
        return parse_history(payload)

    async def fetch(self, account_id: str) -> list[HistoryPoint]:
        """Fetch one product's history; empty on any failure."""
        url = self._url(account_id)
        attempts = max(1, self.settings.HISTORY_MAX_RETRIES)
        for attempt in range(attempts):
            try:
                points = await self._attempt(url)
                if points is not None:
                    return points
            except Exception as exc:
                self.logger.debug(
                    "History request error on attempt %d for %s: %s",
                    attempt + 1,
                    url,
                    exc,
                )
            if attempt + 1 < attempts:
                await asyncio.sleep(
                    self.settings.HISTORY_RETRY_DELAY * (attempt + 1)
                )
        self.logger.warning(
            "History unavailable for account %s after %d attempt(s)",
            account_id,
            attempts,
        )
        return []

    async def fetch_many(
        self, records: Sequence[RateRecord],
    ) -> dict[str, tuple[HistoryPoint, ...]]:
        """Fetch histories for all records and wait until every one settles.

        Returns a mapping of ``account_id`` to its history points.
        """
        account_ids = list(dict.fromkeys(r.account_id for r in records))
        self.logger.info(
            "Waiting for %d history API calls", len(account_ids)
        )
        outcomes = await gather_settled(
            self.fetch(account_id) for account_id in account_ids
        )

        histories: dict[str, tuple[HistoryPoint, ...]] = {}
        for account_id, outcome in zip(account_ids, outcomes):
            if outcome.ok and outcome.value is not None:
                histories[account_id] = tuple(outcome.value)
            else:
                self.logger.error(
                    "History fetch for %s raised: %s",
                    account_id,
                    outcome.error,
                    exc_info=outcome.error,
                )
                histories[account_id] = ()
        return histories
