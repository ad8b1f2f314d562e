# cd_rates/models/target.py

"""Configured bank page to scrape."""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Target:
    """A named source page with a stable bank name and URL."""

    name: str
    url: str

    @property
    def slug(self) -> str:
        """Filesystem-safe identifier, e.g. ``capital-one``."""
        return re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-")

    @classmethod
    def from_dict(cls, raw: dict[str, str]) -> "Target":
        """Build a Target from a ``Settings.TARGETS`` entry."""
        return cls(name=raw["name"], url=raw["url"])
