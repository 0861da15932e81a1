"""
Persistent store protocol.

A store maps a key to one JSON-compatible document. The engine only ever uses
a single key and always reads and writes the whole document; change
notification is layered on top by the Storage Gateway.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PersistentStore(Protocol):
    """Protocol for document storage backends."""

    async def get(self, key: str) -> dict[str, Any] | None:
        """
        Load the document stored under ``key``.

        Returns:
            The stored document, or None if nothing was stored yet

        Raises:
            StorageError: If the stored data cannot be read
        """
        ...

    async def set(self, key: str, value: dict[str, Any]) -> None:
        """
        Replace the document stored under ``key``.

        Raises:
            StorageError: If the write fails
        """
        ...
