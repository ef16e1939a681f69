from __future__ import annotations

from typing import Protocol

from normalize.items import ContentItem


class SourceAdapter(Protocol):
    """One upstream content source.

    ``fetch`` must not raise for upstream trouble (network, HTTP status,
    malformed bodies); it logs and returns what it has, possibly nothing.
    """

    name: str

    async def fetch(self, location_keywords: str) -> list[ContentItem]: ...
