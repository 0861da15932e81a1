"""In-memory store, for tests and for hosts that persist elsewhere."""

from __future__ import annotations

import copy
from typing import Any


class MemoryStore:
    """Keeps documents in a dict. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, Any]] = {}
        self.writes = 0

    async def get(self, key: str) -> dict[str, Any] | None:
        value = self.data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self.data[key] = copy.deepcopy(value)
        self.writes += 1
