# cd_rates/config/settings.py

"""Central configuration for the cd_rates tracker."""

import logging
import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("cd_rates.settings")


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    """Read an integer from the environment, keeping *default* if unusable."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            "Ignoring %s=%r (not an integer), using %d", name, raw, default
        )
        return default
    if value < minimum:
        logger.warning(
            "Ignoring %s=%d (below %d), using %d", name, value, minimum, default
        )
        return default
    return value


class Settings:
    """Central configuration for the cd_rates tracker."""

    # --- Scraping ---
    REQUEST_DELAY: float = 2.0          # Seconds before each page visit
    REQUEST_JITTER: float = 1.5         # Extra random seconds on top of the delay
    REQUEST_TIMEOUT: int = 60           # Seconds before a page request times out
    MAX_RETRIES: int = 3                # Retry count on transient page failures
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff

    # --- Rate history API ---
    HISTORY_API_TEMPLATE: str = (
        "https://www.depositaccounts.com/ajax/rates-history.aspx"
        "?a={account_id}"
    )
    HISTORY_TIMEOUT: int = 15           # Seconds per history request
    HISTORY_MAX_RETRIES: int = _env_int("CD_RATES_HISTORY_RETRIES", 2)
    HISTORY_RETRY_DELAY: float = 1.0    # Linear backoff base (secs)

    # --- Resilience ---
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }
    HISTORY_HEADERS: dict[str, str] = {
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "X-Requested-With": "XMLHttpRequest",
    }

    # --- Persistence ---
    # "abort" fails the run on an unreadable history log,
    # "reset" quarantines it and starts a fresh log.
    CORRUPT_LOG_POLICY: str = os.getenv(
        "CD_RATES_CORRUPT_LOG_POLICY", "abort"
    )
    EXPORT_PER_TARGET: bool = True

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "cd_rates" / "config" / "selectors.json"
    DATA_DIR: Path = Path(
        os.getenv("CD_RATES_DATA_DIR", str(BASE_DIR / "data"))
    )
    LOGS_DIR: Path = BASE_DIR / "logs"
    HISTORY_LOG_FILE: str = "bank-rates-history.json"
    HISTORY_CSV_FILE: str = "rate-history.csv"
    LATEST_FILE: str = "latest-rates.json"
    TARGETS_SUBDIR: str = "targets"

    # --- Targets (bank pages on depositaccounts.com) ---
    SELECTOR_PROFILE: str = "depositaccounts"
    TARGETS: list[dict[str, str]] = [
        {
            "name": "Marcus by Goldman Sachs",
            "url": (
                "https://www.depositaccounts.com/banks/"
                "marcus-goldman-sachs.html"
            ),
        },
        {
            "name": "Capital One",
            "url": (
                "https://www.depositaccounts.com/banks/"
                "capital-one-360.html"
            ),
        },
        {
            "name": "Ally Bank",
            "url": "https://www.depositaccounts.com/banks/ally-bank.html",
        },
    ]
