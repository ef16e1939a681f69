from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ingest.adapters.base import SourceAdapter
from normalize.items import ContentItem


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterOutcome:
    name: str
    items: list[ContentItem] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    adapters: Sequence[SourceAdapter], location_keywords: str
) -> list[AdapterOutcome]:
    """Run every adapter concurrently and wait for all of them.

    One outcome per adapter, in input order. An adapter that raises despite
    its contract is recorded as failed with no items; the others are
    unaffected.
    """
    if not adapters:
        return []
    results = await asyncio.gather(
        *(adapter.fetch(location_keywords) for adapter in adapters),
        return_exceptions=True,
    )

    outcomes: list[AdapterOutcome] = []
    for adapter, result in zip(adapters, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.error(
                "adapter %s failed: %s: %s",
                adapter.name,
                result.__class__.__name__,
                result,
            )
            outcomes.append(
                AdapterOutcome(name=adapter.name, error=result.__class__.__name__)
            )
            continue
        outcomes.append(AdapterOutcome(name=adapter.name, items=list(result)))
    return outcomes
