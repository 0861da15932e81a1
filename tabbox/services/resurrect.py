"""
Resurrection engine - reopens stored windows, groups and tabs.

Commands address records by storage key; the engine always re-reads the record
from the current document, so a stale copy held by a UI can never be written
back. Only non-closed tabs come back when a group is reopened: closed tabs are
history and are opened one at a time through resurrect_tab.

Live objects created here produce session events of their own. Those are
handled after the command (FIFO), and find the records already rebound to the
new live ids.
"""

from __future__ import annotations

import logging

import attrs

from tabbox import domain
from tabbox.exceptions import RecordNotFoundError
from tabbox.schemas.records import GroupRecord, StorageDocument, TabRecord, WindowRecord
from tabbox.schemas.types import RecordKey, SessionId
from tabbox.services.gateway import StorageGateway
from tabbox.session.probe import probe
from tabbox.session.protocol import SessionProvider

__all__ = ['ResurrectedGroup', 'ResurrectedWindow', 'ResurrectionEngine']

logger = logging.getLogger(__name__)


@attrs.define(frozen=True)
class ResurrectedWindow:
    window_id: SessionId
    window_key: RecordKey


@attrs.define(frozen=True)
class ResurrectedGroup:
    window_id: SessionId
    window_key: RecordKey
    group_id: SessionId
    group_key: RecordKey


def _window(document: StorageDocument, window_key: RecordKey) -> WindowRecord:
    window = document.windows.get(window_key)
    if window is None:
        raise RecordNotFoundError('window', window_key)
    return window


def _group(window: WindowRecord, window_key: RecordKey, group_key: RecordKey) -> GroupRecord:
    group = window.groups.get(group_key)
    if group is None:
        raise RecordNotFoundError('group', window_key, group_key)
    return group


class ResurrectionEngine:
    """Focus-or-recreate for stored windows, groups and tabs."""

    def __init__(self, provider: SessionProvider, gateway: StorageGateway) -> None:
        self.provider = provider
        self.gateway = gateway

    async def _live_window_id(self, window: WindowRecord) -> SessionId | None:
        if window.closed or window.id is None:
            return None
        live = await probe(self.provider.get_window(window.id), f'get_window({window.id})')
        return live.id if live is not None else None

    async def _recreate_window(self, document: StorageDocument, window_key: RecordKey) -> ResurrectedWindow:
        live = await self.provider.create_window()
        new_key = domain.rekey_window(document, window_key, live.id)
        logger.info(f'Recreated window {window_key} as live window {live.id}')
        return ResurrectedWindow(window_id=live.id, window_key=new_key)

    # ==========================================================================
    # Windows
    # ==========================================================================

    async def resurrect_window(self, window_key: RecordKey, restore_first_group: bool = False) -> ResurrectedWindow:
        """
        Focus a stored window, recreating it first if it is not live.

        Args:
            window_key: Key of the WindowRecord
            restore_first_group: When the window has to be recreated, also
                                 reopen its lowest-position group

        Returns:
            The live window id and the record's (possibly new) key

        Raises:
            RecordNotFoundError: If no window is stored under ``window_key``
        """
        document = await self.gateway.read()
        window = _window(document, window_key)

        live_id = await self._live_window_id(window)
        if live_id is not None:
            await self.provider.focus_window(live_id)
            return ResurrectedWindow(window_id=live_id, window_key=window_key)

        result = await self._recreate_window(document, window_key)
        await self.gateway.replace(document)

        if restore_first_group and window.groups:
            first_key = min(window.groups, key=lambda k: window.groups[k].position)
            await self.resurrect_group(result.window_key, first_key)
        await self.provider.focus_window(result.window_id)
        return result

    # ==========================================================================
    # Groups
    # ==========================================================================

    async def resurrect_group(self, window_key: RecordKey, group_key: RecordKey) -> ResurrectedGroup:
        """
        Focus a stored group, recreating it (and its window) if it is not live.

        Only the group's non-closed tabs are reopened. A group without any is
        recreated through a throwaway tab so the title and color are applied,
        and the throwaway is removed again.

        Raises:
            RecordNotFoundError: If the window or group key is not stored
        """
        document = await self.gateway.read()
        window = _window(document, window_key)
        group = _group(window, window_key, group_key)

        if group.id is not None and not group.closed:
            live_group = await probe(self.provider.get_group(group.id), f'get_group({group.id})')
            if live_group is not None:
                await self.provider.focus_window(live_group.window_id)
                tabs = await probe(self.provider.query_tabs(group_id=group.id), f'query_tabs({group.id})') or []
                if tabs:
                    await self.provider.activate_tab(tabs[0].id)
                return ResurrectedGroup(live_group.window_id, window_key, live_group.id, group_key)

        window_id = await self._live_window_id(window)
        if window_id is None:
            recreated = await self._recreate_window(document, window_key)
            window_id, window_key = recreated.window_id, recreated.window_key

        reopen = group.open_tabs
        first_tab: SessionId | None = None
        if reopen:
            live_tabs = [await self.provider.create_tab(window_id, tab.url) for tab in reopen]
            group_id = await self.provider.group_tabs([t.id for t in live_tabs], window_id=window_id)
            await self.provider.update_group(group_id, title=group.title, color=group.color)
            for record, live in zip(reopen, live_tabs, strict=True):
                domain.set_tab_open(record, live.id, record.title or live.display_title)
            first_tab = live_tabs[0].id
        else:
            throwaway = await self.provider.create_tab(window_id)
            group_id = await self.provider.group_tabs([throwaway.id], window_id=window_id)
            await self.provider.update_group(group_id, title=group.title, color=group.color)
            await self.provider.remove_tabs([throwaway.id])

        group.id = group_id
        group.closed = False
        group.collapsed = False
        group.window_id = window_id
        group_key = domain.rekey_group(document.windows[window_key], group_key, group_id)
        logger.info(f'Reopened group {group.title!r} as live group {group_id} with {len(reopen)} tabs')
        await self.gateway.replace(document)

        await self.provider.focus_window(window_id)
        if first_tab is not None:
            await self.provider.activate_tab(first_tab)
        return ResurrectedGroup(window_id, window_key, group_id, group_key)

    # ==========================================================================
    # Tabs
    # ==========================================================================

    async def resurrect_tab(
        self,
        window_key: RecordKey,
        group_key: RecordKey,
        tab_id: SessionId | None,
        url: str,
    ) -> SessionId:
        """
        Focus a stored tab, or open it inside its (reopened) group.

        Args:
            window_key: Key of the owning WindowRecord
            group_key: Key of the owning GroupRecord
            tab_id: Live id of an open tab record, None for a history entry
            url: The tab's URL

        Returns:
            Live id of the focused tab

        Raises:
            RecordNotFoundError: If the window or group key is not stored
        """
        document = await self.gateway.read()
        _group(_window(document, window_key), window_key, group_key)

        if tab_id is not None:
            live = await probe(self.provider.get_tab(tab_id), f'get_tab({tab_id})')
            if live is not None:
                await self.provider.focus_window(live.window_id)
                await self.provider.activate_tab(live.id)
                return live.id

        reopened = await self.resurrect_group(window_key, group_key)
        document = await self.gateway.read()
        window = document.windows[reopened.window_key]
        group = window.groups[reopened.group_key]
        group_key = reopened.group_key

        existing = await probe(self.provider.query_tabs(group_id=reopened.group_id, url=url), 'query_tabs') or []
        if existing:
            live = existing[0]
        else:
            live = await self.provider.create_tab(reopened.window_id, url, active=True)
            if await probe(self.provider.get_group(reopened.group_id), f'get_group({reopened.group_id})') is not None:
                await self.provider.group_tabs([live.id], group_id=reopened.group_id)
            else:
                # The group was empty, so its throwaway tab took the live group with it
                group_id = await self.provider.group_tabs([live.id], window_id=reopened.window_id)
                await self.provider.update_group(group_id, title=group.title, color=group.color)
                group.id = group_id
                group_key = domain.rekey_group(window, group_key, group_id)

        record = next((t for t in group.tabs if t.id == live.id), None)
        if record is None:
            record = next((t for t in group.tabs if t.closed and t.url == url), None)
        if record is None:
            record = TabRecord(url=url)
            group.tabs.append(record)
        domain.set_tab_open(record, live.id, record.title or live.display_title)
        await self.gateway.replace(document)
        logger.info(f'Opened tab {url} as live tab {live.id} in group {group_key}')

        await self.provider.focus_window(reopened.window_id)
        await self.provider.activate_tab(live.id)
        return live.id
