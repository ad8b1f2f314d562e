# tests/test_runner.py

"""Tests for the headless CLI runner commands."""

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from cd_rates.cli.runner import run_scrape, run_show_latest
from cd_rates.errors import NoRatesScrapedError
from cd_rates.models.snapshot import SnapshotEntry
from cd_rates.services.rate_pipeline import RunResult
from cd_rates.storage.history_log import HistoryLogStore
from rate_fixtures import make_record

T0 = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)


@patch("cd_rates.cli.runner.HistoryFetcher")
@patch("cd_rates.cli.runner.PageFetcher")
class TestRunScrape(unittest.IsolatedAsyncioTestCase):
    """run_scrape exit codes and cleanup."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()

    def _wire(self, history_cls: MagicMock) -> MagicMock:
        history = MagicMock()
        history.close = AsyncMock()
        history_cls.return_value = history
        return history

    async def test_unknown_target_fails(
        self, page_cls: MagicMock, history_cls: MagicMock,
    ) -> None:
        """An unknown slug exits 1 before any fetcher is built."""
        code = await run_scrape("no-such-bank", self.tmp_dir)
        self.assertEqual(code, 1)
        page_cls.assert_not_called()

    @patch("cd_rates.cli.runner.Settings.CORRUPT_LOG_POLICY", "Reset")
    async def test_bad_corrupt_policy_fails(
        self, page_cls: MagicMock, history_cls: MagicMock,
    ) -> None:
        """A misspelled configured policy exits 1 instead of raising."""
        code = await run_scrape(None, self.tmp_dir)
        self.assertEqual(code, 1)
        page_cls.assert_not_called()

    @patch("cd_rates.cli.runner.RatePipeline.run", new_callable=AsyncMock)
    async def test_no_rates_exits_nonzero(
        self,
        mock_run: AsyncMock,
        page_cls: MagicMock,
        history_cls: MagicMock,
    ) -> None:
        """A run-fatal error becomes exit 1 and fetchers still close."""
        history = self._wire(history_cls)
        mock_run.side_effect = NoRatesScrapedError(3)

        code = await run_scrape(None, self.tmp_dir)

        self.assertEqual(code, 1)
        page_cls.return_value.close.assert_called_once()
        history.close.assert_awaited_once()

    @patch("cd_rates.cli.runner.RatePipeline.run", new_callable=AsyncMock)
    async def test_success_exits_zero(
        self,
        mock_run: AsyncMock,
        page_cls: MagicMock,
        history_cls: MagicMock,
    ) -> None:
        """A completed run exits 0."""
        self._wire(history_cls)
        mock_run.return_value = RunResult(
            started_at=T0,
            records=(make_record(),),
            history_rows=(),
            skipped_targets=["Zen Bank"],
            entries_total=1,
            written=[Path(self.tmp_dir) / "rate-history.csv"],
        )

        code = await run_scrape("ally-bank", self.tmp_dir)

        self.assertEqual(code, 0)


class TestRunShowLatest(unittest.TestCase):
    """run_show_latest reads the log without scraping."""

    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp())

    def test_empty_log(self) -> None:
        """No snapshots exits 1."""
        self.assertEqual(run_show_latest(str(self.tmp_dir)), 1)

    def test_corrupt_log(self) -> None:
        """An unreadable log exits 1."""
        (self.tmp_dir / "bank-rates-history.json").write_text(
            "nope", encoding="utf-8"
        )
        self.assertEqual(run_show_latest(str(self.tmp_dir)), 1)

    def test_latest_table_and_json(self) -> None:
        """Both output formats succeed once a snapshot exists."""
        HistoryLogStore(self.tmp_dir / "bank-rates-history.json").save(
            [SnapshotEntry(T0, (make_record("1"), make_record("2")))]
        )
        self.assertEqual(run_show_latest(str(self.tmp_dir)), 0)
        self.assertEqual(run_show_latest(str(self.tmp_dir), "json"), 0)


if __name__ == "__main__":
    unittest.main()
