# cd_rates/models/rate_record.py

"""Rate record data model and log-entry normalisation."""

import math
from dataclasses import dataclass
from typing import Any

from cd_rates.errors import RecordSchemaError

# v1: records written before the schema tag (camelCase keys, "N/A"
#     placeholders, no last_updated). v2: snake_case keys plus
#     schema_version, apy null when unknown.
RECORD_SCHEMA_VERSION = 2

# Legacy key -> current key
_LEGACY_KEYS: dict[str, str] = {
    "minDeposit": "min_deposit",
    "accountId": "account_id",
    "bankName": "bank_name",
    "accountName": "account_name",
    "lastUpdated": "last_updated",
}

_REQUIRED = ("bank_name", "account_name")

_MISSING_TEXT = "N/A"


def _normalise_apy(value: Any) -> float | None:
    """Coerce a stored APY to a finite float, or None when unknown."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().removesuffix("%").strip()
        if value.upper() in ("", _MISSING_TEXT):
            return None
    try:
        apy = float(value)
    except (TypeError, ValueError) as exc:
        raise RecordSchemaError(f"Non-numeric apy: {value!r}") from exc
    if not math.isfinite(apy):
        raise RecordSchemaError(f"Non-finite apy: {apy!r}")
    return apy


@dataclass(frozen=True)
class RateRecord:
    """One CD product offered by a bank, as seen in a single run.

    ``apy`` is always a float for freshly extracted records; ``None``
    only appears on migrated v1 records that stored ``"N/A"``.
    """

    bank_name: str
    account_id: str
    apy: float | None
    min_deposit: str
    account_name: str
    last_updated: str | None = None
    schema_version: int = RECORD_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the persisted (current schema) shape."""
        return {
            "schema_version": self.schema_version,
            "bank_name": self.bank_name,
            "account_id": self.account_id,
            "account_name": self.account_name,
            "apy": self.apy,
            "min_deposit": self.min_deposit,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RateRecord":
        """Normalise a stored record of any schema version.

        Legacy camelCase keys are renamed, a missing ``last_updated``
        becomes ``None``, a missing ``account_id`` becomes ``""`` and
        ``apy`` is coerced to a float (``"N/A"`` becomes ``None``).

        Raises:
            RecordSchemaError: The record is not an object, lacks a
                bank or account name, or has a non-numeric ``apy``.
        """
        if not isinstance(raw, dict):
            raise RecordSchemaError(
                f"Expected a JSON object, got {type(raw).__name__}"
            )
        data: dict[str, Any] = {}
        for key, value in raw.items():
            data[_LEGACY_KEYS.get(key, key)] = value

        missing = [k for k in _REQUIRED if not data.get(k)]
        if missing:
            raise RecordSchemaError(
                f"Record missing field(s): {', '.join(missing)}"
            )

        min_deposit = data.get("min_deposit")
        last_updated = data.get("last_updated")
        return cls(
            bank_name=str(data["bank_name"]),
            account_id=str(data.get("account_id") or ""),
            apy=_normalise_apy(data.get("apy")),
            min_deposit=(
                str(min_deposit) if min_deposit is not None
                else _MISSING_TEXT
            ),
            account_name=str(data["account_name"]),
            last_updated=(
                str(last_updated) if last_updated is not None else None
            ),
        )
