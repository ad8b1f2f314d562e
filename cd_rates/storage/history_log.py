# cd_rates/storage/history_log.py

"""Append-only JSON history log: the system of record for snapshots."""

import json
import logging
import shutil
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from cd_rates.errors import (
    CorruptHistoryLogError,
    ExportError,
    HistoryLogOrderError,
    NoRatesScrapedError,
    RecordSchemaError,
)
from cd_rates.models.rate_record import RateRecord
from cd_rates.models.snapshot import SnapshotEntry
from cd_rates.storage.atomic import atomic_write_text

logger = logging.getLogger("cd_rates.history_log")

CORRUPT_POLICIES: tuple[str, ...] = ("abort", "reset")


def append(
    entries: Sequence[SnapshotEntry], entry: SnapshotEntry,
) -> list[SnapshotEntry]:
    """Return a new log with *entry* at the end.

    Raises:
        HistoryLogOrderError: *entry* predates the last stored entry.
    """
    if entries and entry.date < entries[-1].date:
        raise HistoryLogOrderError(
            f"Entry dated {entry.date.isoformat()} is older than the "
            f"last logged entry ({entries[-1].date.isoformat()})"
        )
    return [*entries, entry]


class HistoryLogStore:
    """Reads, merges and persists the snapshot history log.

    Only one run is expected to use the log at a time; there is no
    locking between processes.
    """

    def __init__(self, path: Path, on_corrupt: str = "abort") -> None:
        if on_corrupt not in CORRUPT_POLICIES:
            raise ValueError(
                f"on_corrupt must be one of {CORRUPT_POLICIES}, "
                f"got {on_corrupt!r}"
            )
        self.path = path
        self.on_corrupt = on_corrupt
        self._quarantine_pending = False

    def _parse(self, text: str) -> list[SnapshotEntry]:
        raw = json.loads(text)
        if not isinstance(raw, list):
            raise RecordSchemaError(
                f"History log must be a JSON array, got {type(raw).__name__}"
            )
        return [SnapshotEntry.from_dict(item) for item in raw]

    def load(self) -> list[SnapshotEntry]:
        """Read the log; a missing file is an empty log.

        Raises:
            CorruptHistoryLogError: The file is unreadable and the
                policy is ``"abort"``.
        """
        if not self.path.exists():
            logger.info("No history log at %s, starting fresh", self.path)
            return []
        try:
            entries = self._parse(self.path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            # json.JSONDecodeError and RecordSchemaError are ValueErrors
            if self.on_corrupt == "abort":
                raise CorruptHistoryLogError(
                    f"History log {self.path} is unreadable: {exc}"
                ) from exc
            logger.warning(
                "History log %s is unreadable (%s), treating it as empty",
                self.path,
                exc,
            )
            self._quarantine_pending = True
            return []

        self._quarantine_pending = False
        logger.debug(
            "Loaded %d snapshot entries from %s", len(entries), self.path
        )
        return entries

    def merge_run(
        self,
        records: Sequence[RateRecord],
        started_at: datetime,
        targets_tried: int = 0,
    ) -> tuple[SnapshotEntry, list[SnapshotEntry]]:
        """Build this run's entry and the log with it appended.

        Nothing is written here; see :meth:`save`.

        Raises:
            NoRatesScrapedError: *records* is empty.
        """
        if not records:
            raise NoRatesScrapedError(targets_tried)
        entry = SnapshotEntry(date=started_at, data=tuple(records))
        entries = append(self.load(), entry)
        logger.info(
            "Merged %d records into history log (%d entries)",
            len(records),
            len(entries),
        )
        return entry, entries

    def _quarantine(self) -> None:
        """Keep a copy of an unreadable log before it is replaced."""
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        shutil.copy2(self.path, backup)
        logger.warning("Copied unreadable history log to %s", backup)
        self._quarantine_pending = False

    def save(self, entries: Sequence[SnapshotEntry]) -> Path:
        """Atomically replace the log file with *entries*.

        Raises:
            ExportError: The file could not be written.
        """
        text = json.dumps(
            [e.to_dict() for e in entries], ensure_ascii=False, indent=2
        )
        try:
            if self._quarantine_pending and self.path.exists():
                self._quarantine()
            atomic_write_text(self.path, text + "\n")
        except OSError as exc:
            raise ExportError(
                f"Could not write history log {self.path}: {exc}"
            ) from exc
        logger.info(
            "Saved %d snapshot entries to %s", len(entries), self.path
        )
        return self.path
