# cd_rates/storage/exporter.py

"""Writes a run's merged data to the files the dashboard reads."""

import csv
import io
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cd_rates.config.settings import Settings
from cd_rates.errors import ExportError
from cd_rates.models.rate_record import RateRecord
from cd_rates.models.snapshot import HistoryPoint, SnapshotEntry
from cd_rates.models.target import Target
from cd_rates.storage.atomic import atomic_write_text
from cd_rates.storage.history_log import HistoryLogStore

logger = logging.getLogger("cd_rates.storage")

CSV_HEADER: tuple[str, ...] = (
    "source_name",
    "product_name",
    "history_date",
    "history_yield",
)


@dataclass(frozen=True)
class HistoryRow:
    """One history point joined back to its bank and product."""

    source_name: str
    product_name: str
    history_date: str
    history_yield: float


def history_rows(
    records: Sequence[RateRecord],
    histories: Mapping[str, Sequence[HistoryPoint]],
) -> tuple[HistoryRow, ...]:
    """Flatten per-product histories into CSV rows, in record order."""
    return tuple(
        HistoryRow(
            source_name=record.bank_name,
            product_name=record.account_name,
            history_date=point.date,
            history_yield=point.apy,
        )
        for record in records
        for point in histories.get(record.account_id, ())
    )


def _dump_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


class Exporter:
    """Handles writing run output to disk."""

    def __init__(
        self,
        store: HistoryLogStore,
        output_dir: Path | None = None,
    ) -> None:
        self.store = store
        self.output_dir: Path = output_dir or Settings.DATA_DIR
        self.csv_path = self.output_dir / Settings.HISTORY_CSV_FILE
        self.latest_path = self.output_dir / Settings.LATEST_FILE
        self.targets_dir = self.output_dir / Settings.TARGETS_SUBDIR
        logger.debug("Exporter initialised, output_dir=%s", self.output_dir)

    def _write(self, path: Path, text: str, newline: str | None = None) -> Path:
        try:
            return atomic_write_text(path, text, newline=newline)
        except OSError as exc:
            raise ExportError(f"Could not write {path}: {exc}") from exc

    def write_history_csv(self, rows: Sequence[HistoryRow]) -> Path:
        """Write the flat history table; text fields are always quoted."""
        buf = io.StringIO(newline="")
        writer = csv.writer(
            buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n"
        )
        # Header stays unquoted so naive readers see plain column names
        buf.write(",".join(CSV_HEADER) + "\n")
        for row in rows:
            writer.writerow([
                row.source_name,
                row.product_name,
                row.history_date,
                row.history_yield,
            ])
        path = self._write(self.csv_path, buf.getvalue(), newline="")
        logger.info("Exported %d history rows to %s", len(rows), path)
        return path

    def write_latest(self, entry: SnapshotEntry) -> Path:
        """Write only the most recent run's records."""
        path = self._write(
            self.latest_path,
            _dump_json([r.to_dict() for r in entry.data]),
        )
        logger.info("Saved %d latest records to %s", len(entry.data), path)
        return path

    def write_per_target(
        self,
        entries: Sequence[SnapshotEntry],
        targets: Sequence[Target],
    ) -> list[Path]:
        """Write one history log per bank, skipping entries without it."""
        paths: list[Path] = []
        for target in targets:
            per_target = [
                {
                    "date": e.date.isoformat(),
                    "data": [
                        r.to_dict() for r in e.data
                        if r.bank_name == target.name
                    ],
                }
                for e in entries
                if any(r.bank_name == target.name for r in e.data)
            ]
            paths.append(
                self._write(
                    self.targets_dir / f"{target.slug}.json",
                    _dump_json(per_target),
                )
            )
        logger.info(
            "Saved per-target logs for %d targets to %s",
            len(targets),
            self.targets_dir,
        )
        return paths

    def write_log(self, entries: Sequence[SnapshotEntry]) -> Path:
        """Persist the full history log (the system of record)."""
        return self.store.save(entries)

    def export_run(
        self,
        entries: Sequence[SnapshotEntry],
        entry: SnapshotEntry,
        rows: Sequence[HistoryRow],
        targets: Sequence[Target] = (),
    ) -> list[Path]:
        """Write every output; the history log goes last.

        Raises:
            ExportError: Any output could not be written.
        """
        written = [
            self.write_history_csv(rows),
            self.write_latest(entry),
        ]
        if targets:
            written.extend(self.write_per_target(entries, targets))
        written.append(self.write_log(entries))
        return written
