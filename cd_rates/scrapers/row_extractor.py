# cd_rates/scrapers/row_extractor.py

"""Parses a bank page's CD table into rate records."""

import logging
import math

from bs4 import BeautifulSoup
from bs4.element import Tag

from cd_rates.models.rate_record import RateRecord
from cd_rates.models.target import Target

logger = logging.getLogger("cd_rates.extractor")


def parse_yield(text: str | None) -> float | None:
    """Parse ``' 4.50% '`` into ``4.5``; ``None`` if not a finite number."""
    if text is None:
        return None
    cleaned = text.strip().removesuffix("%").strip()
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _cell_text(row: Tag, selector: str | None) -> str | None:
    """Stripped text of the first cell matching *selector*, if any."""
    if not selector:
        return None
    cell = row.select_one(selector)
    if cell is None:
        return None
    text = cell.get_text(" ", strip=True)
    return text or None


class RowExtractor:
    """Turns product table rows into :class:`RateRecord` objects.

    A row only becomes a record when its yield, minimum deposit and
    account name are all present and the yield parses; anything else
    is dropped whole.
    """

    def __init__(self, selectors: dict[str, str]) -> None:
        self.selectors = selectors

    def _parse_row(
        self, row: Tag, target: Target,
    ) -> RateRecord | None:
        """Parse one table row, or ``None`` if it is incomplete."""
        row_id = str(row.get("id") or "")
        account_id = row_id.removeprefix(
            self.selectors.get("row_id_prefix", "")
        )

        apy = parse_yield(_cell_text(row, self.selectors["apy"]))
        min_deposit = _cell_text(row, self.selectors["min_deposit"])
        account_name = _cell_text(row, self.selectors["account_name"])

        if apy is None or min_deposit is None or account_name is None:
            logger.debug(
                "[%s] Skipping incomplete row %r", target.name, row_id
            )
            return None

        return RateRecord(
            bank_name=target.name,
            account_id=account_id,
            apy=apy,
            min_deposit=min_deposit,
            account_name=account_name,
            last_updated=_cell_text(
                row, self.selectors.get("last_updated")
            ),
        )

    def extract(
        self, soup: BeautifulSoup, target: Target,
    ) -> list[RateRecord]:
        """Extract every complete row in document order."""
        rows = soup.select(self.selectors["rows"])
        records = [
            record
            for record in (self._parse_row(row, target) for row in rows)
            if record is not None
        ]
        logger.info(
            "[%s] Extracted %d of %d product rows",
            target.name,
            len(records),
            len(rows),
        )
        return records
