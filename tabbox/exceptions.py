"""
Shared exceptions for tabbox.

Exception Hierarchy:
    TabBoxError (base)
    ├── SessionProviderError (live session call failed - treated as "absent")
    │   └── SessionObjectNotFoundError (live window/group/tab no longer exists)
    ├── RecordNotFoundError (explicit command targets a missing storage key)
    └── StorageError (persisted document unreadable or backend misconfigured)

None of these are fatal to the engine: provider errors degrade to "entity
absent" at the probe site, record errors surface as failed command results.
"""

from __future__ import annotations


class TabBoxError(Exception):
    """Base exception for all tabbox errors."""


class SessionProviderError(TabBoxError):
    """A call into the live session provider failed."""


class SessionObjectNotFoundError(SessionProviderError):
    """Raised when a live window, group or tab does not exist (anymore)."""

    def __init__(self, kind: str, object_id: int) -> None:
        self.kind = kind
        self.object_id = object_id
        super().__init__(f'No live {kind} with id {object_id}')


class RecordNotFoundError(TabBoxError):
    """Raised when a command addresses a record key that is not stored."""

    def __init__(self, kind: str, *keys: str) -> None:
        self.kind = kind
        self.keys = keys
        super().__init__(f'{kind.capitalize()} not found: {"/".join(keys)}')


class StorageError(TabBoxError):
    """Raised when the persisted document cannot be read or written."""
