from __future__ import annotations

import json


def parse_json_records(
    data: bytes, *, keys: tuple[str, ...] = ("articles", "data", "items")
) -> list[dict]:
    """Top-level list, or the first list found under one of ``keys``.

    Raises ``json.JSONDecodeError`` (a ``ValueError``) for non-JSON bodies.
    """
    doc = json.loads(data)
    if isinstance(doc, list):
        return [r for r in doc if isinstance(r, dict)]
    if isinstance(doc, dict):
        for key in keys:
            value = doc.get(key)
            if isinstance(value, list):
                return [r for r in value if isinstance(r, dict)]
    return []


def find_path(doc: object, *path: str) -> object:
    """Walk nested dicts; missing keys or non-dicts yield None."""
    node = doc
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node
