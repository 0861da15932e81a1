"""
Protocols for progress messages addressed to a person.

Record edits (delete, rename) report what they removed through a
LoggerProtocol so the CLI can echo it. Reconcile and resurrection passes are
not user-driven and only use the stdlib logging module.
"""

from __future__ import annotations

from typing import Protocol


class LoggerProtocol(Protocol):
    """
    Async sink for record-edit progress.

    Implementations:
    - CLILogger (cli/logger.py): echoes to the terminal, info only with --verbose
    - NullLogger: used by the engine, whose UI learns of edits via StorageChanged
    """

    async def info(self, message: str) -> None: ...
    async def warning(self, message: str) -> None: ...
    async def error(self, message: str) -> None: ...


class NullLogger:
    """Discards every message."""

    async def info(self, message: str) -> None:
        pass

    async def warning(self, message: str) -> None:
        pass

    async def error(self, message: str) -> None:
        pass
