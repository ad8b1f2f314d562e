# cd_rates/models/snapshot.py

"""Snapshot and history-point models for the append-only rate log."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from cd_rates.errors import RecordSchemaError
from cd_rates.models.rate_record import RateRecord


@dataclass(frozen=True)
class HistoryPoint:
    """A single (date, APY) sample from a product's rate history."""

    date: str
    apy: float


@dataclass(frozen=True)
class SnapshotEntry:
    """All rate records observed in one run, stamped with its start time.

    Entries read back from the log keep their stored JSON object in
    ``raw`` so that saving the log writes them out exactly as found.
    """

    date: datetime
    data: tuple[RateRecord, ...]
    raw: dict[str, Any] | None = field(
        default=None, compare=False, repr=False
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to ``{"date": ISO-8601, "data": [...]}``.

        A loaded entry returns its stored object unchanged.
        """
        if self.raw is not None:
            return self.raw
        return {
            "date": self.date.isoformat(),
            "data": [r.to_dict() for r in self.data],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SnapshotEntry":
        """Parse a stored entry, normalising every record.

        Naive timestamps (older entries) are taken to be UTC.
        """
        if not isinstance(raw, dict):
            raise RecordSchemaError(
                f"Expected a JSON object, got {type(raw).__name__}"
            )
        try:
            date_text = str(raw["date"])
            records = raw["data"]
        except KeyError as exc:
            raise RecordSchemaError(
                f"Snapshot entry missing {exc.args[0]!r}"
            ) from exc
        if not isinstance(records, list):
            raise RecordSchemaError("Snapshot 'data' must be a list")

        try:
            # JS toISOString() uses a trailing "Z"
            date = datetime.fromisoformat(date_text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise RecordSchemaError(
                f"Invalid snapshot date: {date_text!r}"
            ) from exc
        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)

        return cls(
            date=date,
            data=tuple(RateRecord.from_dict(r) for r in records),
            raw=raw,
        )
