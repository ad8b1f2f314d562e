# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from pathlib import Path
from unittest.mock import patch

from cd_rates.config.settings import Settings, _env_int
from cd_rates.models.target import Target
from cd_rates.storage.history_log import CORRUPT_POLICIES


class TestSettings(unittest.TestCase):
    """Verify Settings constants and target registry."""

    def test_request_delay_is_positive_float(self) -> None:
        """REQUEST_DELAY must be a positive number."""
        self.assertIsInstance(Settings.REQUEST_DELAY, float)
        self.assertGreater(Settings.REQUEST_DELAY, 0)

    def test_timeouts_are_positive_ints(self) -> None:
        """Page and history timeouts must be positive integers."""
        for value in (Settings.REQUEST_TIMEOUT, Settings.HISTORY_TIMEOUT):
            self.assertIsInstance(value, int)
            self.assertGreater(value, 0)

    def test_retry_budgets(self) -> None:
        """Retry counts must be >= 1."""
        self.assertGreaterEqual(Settings.MAX_RETRIES, 1)
        self.assertGreaterEqual(Settings.HISTORY_MAX_RETRIES, 1)

    def test_history_template_takes_account_id(self) -> None:
        """The history URL template formats with an account id."""
        url = Settings.HISTORY_API_TEMPLATE.format(account_id="123")
        self.assertTrue(url.endswith("a=123"))

    def test_corrupt_policy_is_known(self) -> None:
        """The default corrupt-log policy is a valid choice."""
        self.assertIn(Settings.CORRUPT_LOG_POLICY, CORRUPT_POLICIES)

    def test_targets_have_required_keys(self) -> None:
        """Every target must have name and url."""
        for raw in Settings.TARGETS:
            with self.subTest(target=raw.get("name", "?")):
                self.assertIn("name", raw)
                self.assertTrue(raw["url"].startswith("https://"))

    def test_target_slugs_are_unique(self) -> None:
        """No two targets share a slug."""
        slugs = [Target.from_dict(t).slug for t in Settings.TARGETS]
        self.assertEqual(len(slugs), len(set(slugs)))

    def test_path_constants_are_paths(self) -> None:
        """Path-typed settings are Path instances."""
        self.assertIsInstance(Settings.BASE_DIR, Path)
        self.assertIsInstance(Settings.SELECTORS_PATH, Path)
        self.assertIsInstance(Settings.DATA_DIR, Path)
        self.assertIsInstance(Settings.LOGS_DIR, Path)

    def test_selectors_path_exists(self) -> None:
        """The selectors.json file must exist on disk."""
        self.assertTrue(Settings.SELECTORS_PATH.exists())

    def test_impersonate_browser_is_string(self) -> None:
        """IMPERSONATE_BROWSER must be a non-empty string."""
        self.assertIsInstance(Settings.IMPERSONATE_BROWSER, str)
        self.assertTrue(len(Settings.IMPERSONATE_BROWSER) > 0)

    def test_default_headers_has_accept_language(self) -> None:
        """DEFAULT_HEADERS must include Accept-Language."""
        self.assertIn("Accept-Language", Settings.DEFAULT_HEADERS)


class TestEnvInt(unittest.TestCase):
    """Integer settings read from the environment."""

    def test_unset_uses_default(self) -> None:
        """A missing variable yields the default."""
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(_env_int("CD_RATES_HISTORY_RETRIES", 2), 2)

    def test_valid_value(self) -> None:
        """A valid integer is used as-is."""
        with patch.dict("os.environ", {"CD_RATES_HISTORY_RETRIES": "4"}):
            self.assertEqual(_env_int("CD_RATES_HISTORY_RETRIES", 2), 4)

    def test_garbage_falls_back(self) -> None:
        """A non-integer value keeps the default instead of raising."""
        with patch.dict("os.environ", {"CD_RATES_HISTORY_RETRIES": "two"}):
            with self.assertLogs("cd_rates.settings", level="WARNING"):
                self.assertEqual(
                    _env_int("CD_RATES_HISTORY_RETRIES", 2), 2
                )

    def test_below_minimum_falls_back(self) -> None:
        """Zero attempts is rejected."""
        with patch.dict("os.environ", {"CD_RATES_HISTORY_RETRIES": "0"}):
            self.assertEqual(_env_int("CD_RATES_HISTORY_RETRIES", 2), 2)


if __name__ == "__main__":
    unittest.main()
