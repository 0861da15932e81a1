"""
Record commands - explicit edits of the stored tree.

These are the only operations that remove records. They never talk to the
live session, so they run the same inside the engine and from the offline CLI.
"""

from __future__ import annotations

import logging

from tabbox.exceptions import RecordNotFoundError
from tabbox.protocols import LoggerProtocol, NullLogger
from tabbox.schemas.records import GroupRecord, StorageDocument, TabRecord, WindowRecord
from tabbox.schemas.types import RecordKey, SessionId
from tabbox.services.gateway import StorageGateway

__all__ = ['RecordCommands']

logger = logging.getLogger(__name__)


class RecordCommands:
    """Delete and rename operations on the StorageDocument."""

    def __init__(self, gateway: StorageGateway, user_logger: LoggerProtocol | None = None) -> None:
        """
        Initialize record commands.

        Args:
            gateway: Storage gateway for the document
            user_logger: Progress messages for a human (default: NullLogger)
        """
        self.gateway = gateway
        self.user_logger = user_logger or NullLogger()

    async def _load_window(self, window_key: RecordKey) -> tuple[StorageDocument, WindowRecord]:
        document = await self.gateway.read()
        window = document.windows.get(window_key)
        if window is None:
            raise RecordNotFoundError('window', window_key)
        return document, window

    async def _load_group(
        self, window_key: RecordKey, group_key: RecordKey
    ) -> tuple[StorageDocument, WindowRecord, GroupRecord]:
        document, window = await self._load_window(window_key)
        group = window.groups.get(group_key)
        if group is None:
            raise RecordNotFoundError('group', window_key, group_key)
        return document, window, group

    async def get_document(self) -> StorageDocument:
        return await self.gateway.read()

    async def delete_window(self, window_key: RecordKey) -> None:
        """
        Permanently delete a window record with all its groups and tabs.

        Raises:
            RecordNotFoundError: If no window is stored under ``window_key``
        """
        document, window = await self._load_window(window_key)
        del document.windows[window_key]
        await self.gateway.replace(document)
        logger.info(f'Deleted window {window_key} ({len(window.groups)} groups)')
        await self.user_logger.info(f'Deleted window {window_key}')

    async def delete_group(self, window_key: RecordKey, group_key: RecordKey) -> None:
        """
        Permanently delete a group record.

        A window left without groups stays until the next full reconcile
        prunes it.

        Raises:
            RecordNotFoundError: If the window or group key is not stored
        """
        document, window, group = await self._load_group(window_key, group_key)
        del window.groups[group_key]
        await self.gateway.replace(document)
        logger.info(f'Deleted group {group_key} ({group.title!r}) from window {window_key}')
        await self.user_logger.info(f'Deleted group {group.title or group_key}')

    async def delete_tab(
        self,
        window_key: RecordKey,
        group_key: RecordKey,
        tab_id: SessionId | None = None,
        url: str | None = None,
    ) -> TabRecord:
        """
        Permanently delete one tab record.

        A tab with a live id is addressed by that id. A tab without one (history,
        or a tab of a closed group) is addressed by URL, and the first such
        record goes.

        Returns:
            The removed record

        Raises:
            RecordNotFoundError: If the window, group or tab is not stored
        """
        document, _, group = await self._load_group(window_key, group_key)
        if tab_id is not None:
            index = next((i for i, t in enumerate(group.tabs) if t.id == tab_id), None)
        else:
            index = next((i for i, t in enumerate(group.tabs) if t.id is None and t.url == url), None)
        if index is None:
            raise RecordNotFoundError('tab', window_key, group_key, str(tab_id if tab_id is not None else url))

        removed = group.tabs.pop(index)
        await self.gateway.replace(document)
        logger.info(f'Deleted tab {removed.url} from group {group_key}')
        await self.user_logger.info(f'Deleted tab {removed.title or removed.url}')
        return removed

    async def delete_closed_tabs(self, window_key: RecordKey, group_key: RecordKey) -> int:
        """
        Drop a group's tab history.

        Returns:
            Number of closed tab records removed
        """
        document, _, group = await self._load_group(window_key, group_key)
        before = len(group.tabs)
        group.tabs = [t for t in group.tabs if not t.closed]
        removed = before - len(group.tabs)
        await self.gateway.replace(document)
        logger.info(f'Deleted {removed} closed tabs from group {group_key}')
        await self.user_logger.info(f'Deleted {removed} closed tabs')
        return removed

    async def set_window_name(self, window_key: RecordKey, name: str | None) -> None:
        """Name a window record. Surrounding whitespace is trimmed; a blank name clears it."""
        document, window = await self._load_window(window_key)
        window.name = (name or '').strip() or None
        await self.gateway.replace(document)
        logger.info(f'Window {window_key} renamed to {window.name!r}')
