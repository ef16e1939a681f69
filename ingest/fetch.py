from __future__ import annotations

import asyncio
import time

import httpx


FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"
JSON_ACCEPT = "application/json, */*"


def request_timeout(read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=min(5.0, read_s), read=read_s, write=5.0, pool=5.0)


async def fetch(
    client: httpx.AsyncClient,
    *,
    url: str,
    user_agent: str,
    timeout_s: float,
    accept: str = FEED_ACCEPT,
    params: dict[str, str] | None = None,
) -> tuple[int, bytes | None, int]:
    """GET ``url``; returns (status, body if 200 else None, elapsed ms).

    ``timeout_s`` bounds the whole call, body included. Transport errors
    propagate as ``httpx.RequestError`` and an overrun as ``TimeoutError``
    for the caller to handle.
    """
    headers = {"User-Agent": user_agent, "Accept": accept}
    start = time.perf_counter()
    async with asyncio.timeout(timeout_s):
        response = await client.get(
            url, params=params, headers=headers, timeout=request_timeout(timeout_s)
        )
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    return (
        response.status_code,
        (response.content if response.status_code == 200 else None),
        elapsed_ms,
    )
