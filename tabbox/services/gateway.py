"""
Storage gateway - whole-document read/replace with change notification.

The StorageDocument is the single shared resource of the engine. It is always
read in full and replaced in full; the FIFO queue is what keeps two writers
from interleaving, the gateway itself has no locking.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

import pydantic

from tabbox.exceptions import StorageError
from tabbox.schemas.records import StorageDocument
from tabbox.storage.protocol import PersistentStore

__all__ = ['ChangeListener', 'StorageGateway']

logger = logging.getLogger(__name__)

ChangeListener = Callable[[StorageDocument], Awaitable[None] | None]


class StorageGateway:
    """Reads and replaces the StorageDocument stored under one fixed key."""

    def __init__(self, store: PersistentStore, key: str = 'tabbox') -> None:
        self.store = store
        self.key = key
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        """Call ``listener`` with the new document after every replace."""
        self._listeners.append(listener)

    async def read(self) -> StorageDocument:
        """
        Load the current document (an empty one if nothing is stored yet).

        Raises:
            StorageError: If the stored data does not match the record schema
        """
        raw = await self.store.get(self.key)
        if raw is None:
            return StorageDocument()
        try:
            return StorageDocument.model_validate(raw)
        except pydantic.ValidationError as e:
            raise StorageError(f'Stored document under {self.key!r} is invalid: {e}') from e

    async def replace(self, document: StorageDocument) -> None:
        """Persist ``document`` as a whole, then notify subscribers."""
        await self.store.set(self.key, document.model_dump(mode='json'))
        logger.debug(f'Stored document with {len(document.windows)} windows')
        for listener in self._listeners:
            result = listener(document)
            if inspect.isawaitable(result):
                await result
