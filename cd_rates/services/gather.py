# cd_rates/services/gather.py

"""Structured join for concurrent awaitables."""

import asyncio
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one awaitable: a value or the exception it raised."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        """True when the awaitable completed without raising."""
        return self.error is None


async def gather_settled(
    aws: Iterable[Awaitable[T]],
) -> list[Settled[T]]:
    """Run every awaitable concurrently and wait for all of them.

    Failures are captured per item instead of cancelling siblings, so
    the result always has one :class:`Settled` per input, in order.
    """
    outcomes = await asyncio.gather(*aws, return_exceptions=True)
    settled: list[Settled[T]] = []
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            settled.append(Settled(error=outcome))
        else:
            settled.append(Settled(value=outcome))
    return settled
