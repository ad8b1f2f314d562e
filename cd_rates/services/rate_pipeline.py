# cd_rates/services/rate_pipeline.py

"""Runs one scrape: visit targets, collect histories, merge and export."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from cd_rates.config.settings import Settings
from cd_rates.models.rate_record import RateRecord
from cd_rates.models.snapshot import HistoryPoint
from cd_rates.models.target import Target
from cd_rates.scrapers.history_fetcher import HistoryFetcher
from cd_rates.scrapers.page_fetcher import PageFetcher
from cd_rates.scrapers.row_extractor import RowExtractor
from cd_rates.storage.exporter import Exporter, HistoryRow, history_rows
from cd_rates.storage.history_log import HistoryLogStore

logger = logging.getLogger("cd_rates.pipeline")


@dataclass(frozen=True)
class TargetResult:
    """What one target contributed to the run."""

    target: Target
    records: tuple[RateRecord, ...] = ()
    histories: dict[str, tuple[HistoryPoint, ...]] = field(
        default_factory=lambda: dict[str, tuple[HistoryPoint, ...]]()
    )
    skipped: bool = False


@dataclass
class RunResult:
    """Summary of a completed run."""

    started_at: datetime
    records: tuple[RateRecord, ...] = ()
    history_rows: tuple[HistoryRow, ...] = ()
    skipped_targets: list[str] = field(
        default_factory=lambda: list[str]()
    )
    entries_total: int = 0
    written: list[Path] = field(
        default_factory=lambda: list[Path]()
    )


def resolve_targets(
    target_csv: str | None = None,
) -> list[Target]:
    """Map comma-separated bank slugs to configured targets.

    Returns every target when *target_csv* is ``None``.

    Raises:
        ValueError: An unknown slug was requested.
    """
    targets = [Target.from_dict(t) for t in Settings.TARGETS]
    if target_csv is None:
        return targets

    available = {t.slug: t for t in targets}
    requested = [s.strip() for s in target_csv.split(",") if s.strip()]
    unknown = [r for r in requested if r not in available]
    if unknown:
        raise ValueError(
            f"Unknown target(s): {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(available))}"
        )
    return [available[r] for r in requested]


class RatePipeline:
    """Coordinates fetching, extraction, history collection and export.

    Targets are visited one after another over the same page session.
    Within a target, history requests run concurrently and are all
    awaited before the next target starts.
    """

    def __init__(
        self,
        targets: Sequence[Target],
        fetcher: PageFetcher,
        extractor: RowExtractor,
        history_fetcher: HistoryFetcher,
        store: HistoryLogStore,
        exporter: Exporter,
        export_per_target: bool = Settings.EXPORT_PER_TARGET,
    ) -> None:
        self.targets = tuple(targets)
        self.fetcher = fetcher
        self.extractor = extractor
        self.history_fetcher = history_fetcher
        self.store = store
        self.exporter = exporter
        self.export_per_target = export_per_target

    async def _process_target(self, target: Target) -> TargetResult:
        """Scrape one target; failures yield an empty, skipped result."""
        logger.info("Processing bank: %s", target.name)
        soup = await asyncio.to_thread(self.fetcher.fetch, target)
        if soup is None:
            return TargetResult(target=target, skipped=True)

        try:
            records = tuple(self.extractor.extract(soup, target))
        except Exception as exc:
            logger.error(
                "[%s] Extraction failed: %s",
                target.name,
                exc,
                exc_info=True,
            )
            return TargetResult(target=target, skipped=True)

        histories = await self.history_fetcher.fetch_many(records)
        logger.info(
            "[%s] All %d history calls settled",
            target.name,
            len(histories),
        )
        return TargetResult(
            target=target, records=records, histories=histories
        )

    async def collect(self) -> tuple[TargetResult, ...]:
        """Visit every target in order."""
        results: list[TargetResult] = []
        for target in self.targets:
            results.append(await self._process_target(target))
        return tuple(results)

    async def run(self) -> RunResult:
        """Execute a full scrape.

        Raises:
            NoRatesScrapedError: No target yielded any record.
            CorruptHistoryLogError: The stored log is unreadable and
                the store's policy is ``"abort"``.
            ExportError: An output file could not be written.
        """
        started_at = datetime.now(timezone.utc)
        logger.info(
            "Starting scrape of %d targets at %s",
            len(self.targets),
            started_at.isoformat(),
        )

        results = await self.collect()
        records = tuple(r for res in results for r in res.records)
        skipped = [res.target.name for res in results if res.skipped]

        entry, entries = self.store.merge_run(
            records, started_at, targets_tried=len(self.targets)
        )
        rows = tuple(
            row
            for res in results
            for row in history_rows(res.records, res.histories)
        )
        written = self.exporter.export_run(
            entries,
            entry,
            rows,
            self.targets if self.export_per_target else (),
        )

        logger.info(
            "Run complete: %d records, %d history rows, %d skipped targets",
            len(records),
            len(rows),
            len(skipped),
        )
        return RunResult(
            started_at=started_at,
            records=records,
            history_rows=rows,
            skipped_targets=skipped,
            entries_total=len(entries),
            written=written,
        )
