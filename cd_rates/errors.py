# cd_rates/errors.py

"""Exception hierarchy for the rate tracker.

Only :class:`RunFatalError` subclasses escape a run; every per-target
and per-record problem is absorbed where it happens and logged.
"""


class CdRatesError(Exception):
    """Base class for all cd_rates errors."""


class RecordSchemaError(CdRatesError, ValueError):
    """A persisted rate record cannot be normalised to the current schema."""


class RunFatalError(CdRatesError):
    """Aborts the run; the persisted history log is left untouched."""


class NoRatesScrapedError(RunFatalError):
    """Every target contributed zero records."""

    def __init__(self, targets_tried: int) -> None:
        self.targets_tried = targets_tried
        super().__init__(
            f"No rates were scraped from {targets_tried} target(s)"
        )


class CorruptHistoryLogError(RunFatalError):
    """The existing history log cannot be parsed."""


class HistoryLogOrderError(RunFatalError):
    """A new entry would break the log's chronological order."""


class ExportError(RunFatalError):
    """An output file could not be written."""
