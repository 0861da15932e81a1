"""
In-memory session provider.

Implements SessionProvider with the browser's semantics and publishes the same
session events the browser would:
- a new window opens with one blank, ungrouped tab
- a group disappears when its last tab leaves it
- a window disappears when its last tab is removed
- group order within a window follows the tab strip

Besides the protocol methods it offers user-level actions (close a window,
drag a group to another window, navigate a tab, restart the browser) so that
hosts and tests can drive the engine the way a user would.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Sequence

import attrs

from tabbox.exceptions import SessionObjectNotFoundError, SessionProviderError
from tabbox.schemas.events import (
    GroupCreated,
    GroupMoved,
    GroupRemoved,
    GroupUpdated,
    SessionEvent,
    TabAttached,
    TabChange,
    TabCreated,
    TabDetached,
    TabRemoved,
    TabUpdated,
    WindowFocusChanged,
    WindowRemoved,
)
from tabbox.schemas.live import LiveGroup, LiveTab, LiveWindow
from tabbox.schemas.types import Color, SessionId

__all__ = ['InMemorySessionProvider', 'NEW_TAB_URL']

logger = logging.getLogger(__name__)

NEW_TAB_URL = 'chrome://newtab/'

EventListener = Callable[[SessionEvent], None]


@attrs.define
class _Tab:
    id: SessionId
    window_id: SessionId
    url: str
    title: str
    group_id: SessionId | None = None
    active: bool = False


@attrs.define
class _Group:
    id: SessionId
    window_id: SessionId
    title: str = ''
    color: Color | None = 'grey'
    collapsed: bool = False


class InMemorySessionProvider:
    """Live session held in memory, with browser-like ids and events."""

    def __init__(self, id_start: int = 1) -> None:
        """
        Initialize an empty session.

        Args:
            id_start: First id handed out. Ids are never reused within one
                      provider, but a restart() starts a new id sequence.
        """
        self._ids = itertools.count(id_start)
        self._windows: dict[SessionId, list[_Tab]] = {}
        self._groups: dict[SessionId, _Group] = {}
        self._focused: SessionId | None = None
        self._listeners: list[EventListener] = []
        self.failing: set[str] = set()  # Method names that raise SessionProviderError

    # ==========================================================================
    # Events
    # ==========================================================================

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: SessionEvent) -> None:
        for listener in self._listeners:
            listener(event)

    def _check(self, method: str) -> None:
        if method in self.failing:
            raise SessionProviderError(f'{method} failed (simulated)')

    # ==========================================================================
    # Snapshots
    # ==========================================================================

    def _tab(self, tab_id: SessionId) -> _Tab:
        for tabs in self._windows.values():
            for tab in tabs:
                if tab.id == tab_id:
                    return tab
        raise SessionObjectNotFoundError('tab', tab_id)

    def _live_tab(self, tab: _Tab) -> LiveTab:
        index = self._windows[tab.window_id].index(tab)
        return LiveTab(
            id=tab.id,
            window_id=tab.window_id,
            group_id=tab.group_id,
            index=index,
            title=tab.title,
            url=tab.url,
            active=tab.active,
        )

    def _live_group(self, group: _Group) -> LiveGroup:
        return LiveGroup(
            id=group.id,
            window_id=group.window_id,
            title=group.title,
            color=group.color,
            collapsed=group.collapsed,
        )

    def _group_order(self, window_id: SessionId) -> list[SessionId]:
        order: list[SessionId] = []
        for tab in self._windows.get(window_id, []):
            if tab.group_id is not None and tab.group_id not in order:
                order.append(tab.group_id)
        return order

    # ==========================================================================
    # SessionProvider: windows
    # ==========================================================================

    async def list_windows(self) -> list[LiveWindow]:
        self._check('list_windows')
        return [LiveWindow(id=wid, focused=wid == self._focused) for wid in self._windows]

    async def get_window(self, window_id: SessionId) -> LiveWindow:
        self._check('get_window')
        if window_id not in self._windows:
            raise SessionObjectNotFoundError('window', window_id)
        return LiveWindow(id=window_id, focused=window_id == self._focused)

    async def create_window(self) -> LiveWindow:
        self._check('create_window')
        window_id = next(self._ids)
        self._windows[window_id] = []
        blank = _Tab(id=next(self._ids), window_id=window_id, url=NEW_TAB_URL, title='New Tab', active=True)
        self._windows[window_id].append(blank)
        self._emit(TabCreated(tab=self._live_tab(blank)))
        return LiveWindow(id=window_id)

    async def focus_window(self, window_id: SessionId) -> None:
        self._check('focus_window')
        if window_id not in self._windows:
            raise SessionObjectNotFoundError('window', window_id)
        if self._focused != window_id:
            self._focused = window_id
            self._emit(WindowFocusChanged(window_id=window_id))

    async def get_last_focused_window(self) -> LiveWindow:
        self._check('get_last_focused_window')
        if self._focused is None or self._focused not in self._windows:
            if not self._windows:
                raise SessionObjectNotFoundError('window', -1)
            self._focused = next(iter(self._windows))
        return LiveWindow(id=self._focused, focused=True)

    # ==========================================================================
    # SessionProvider: groups
    # ==========================================================================

    async def list_groups(self, window_id: SessionId | None = None) -> list[LiveGroup]:
        self._check('list_groups')
        window_ids = [window_id] if window_id is not None else list(self._windows)
        return [self._live_group(self._groups[gid]) for wid in window_ids for gid in self._group_order(wid)]

    async def get_group(self, group_id: SessionId) -> LiveGroup:
        self._check('get_group')
        if group_id not in self._groups:
            raise SessionObjectNotFoundError('group', group_id)
        return self._live_group(self._groups[group_id])

    async def update_group(
        self,
        group_id: SessionId,
        *,
        title: str | None = None,
        color: Color | None = None,
        collapsed: bool | None = None,
    ) -> LiveGroup:
        self._check('update_group')
        if group_id not in self._groups:
            raise SessionObjectNotFoundError('group', group_id)
        group = self._groups[group_id]
        if title is not None:
            group.title = title
        if color is not None:
            group.color = color
        if collapsed is not None:
            group.collapsed = collapsed
        live = self._live_group(group)
        self._emit(GroupUpdated(group=live))
        return live

    # ==========================================================================
    # SessionProvider: tabs
    # ==========================================================================

    async def get_tab(self, tab_id: SessionId) -> LiveTab:
        self._check('get_tab')
        return self._live_tab(self._tab(tab_id))

    async def query_tabs(self, *, group_id: SessionId | None = None, url: str | None = None) -> list[LiveTab]:
        self._check('query_tabs')
        return [
            self._live_tab(tab)
            for tabs in self._windows.values()
            for tab in tabs
            if (group_id is None or tab.group_id == group_id) and (url is None or tab.url == url)
        ]

    async def create_tab(self, window_id: SessionId, url: str | None = None, active: bool = False) -> LiveTab:
        self._check('create_tab')
        if window_id not in self._windows:
            raise SessionObjectNotFoundError('window', window_id)
        url = url or NEW_TAB_URL
        tab = _Tab(id=next(self._ids), window_id=window_id, url=url, title=url)
        self._windows[window_id].append(tab)
        if active:
            self._set_active(tab)
        live = self._live_tab(tab)
        self._emit(TabCreated(tab=live))
        return live

    async def activate_tab(self, tab_id: SessionId) -> None:
        self._check('activate_tab')
        self._set_active(self._tab(tab_id))

    def _set_active(self, tab: _Tab) -> None:
        for other in self._windows[tab.window_id]:
            other.active = other is tab

    async def group_tabs(
        self,
        tab_ids: Sequence[SessionId],
        *,
        group_id: SessionId | None = None,
        window_id: SessionId | None = None,
    ) -> SessionId:
        self._check('group_tabs')
        if not tab_ids:
            raise SessionProviderError('group_tabs requires at least one tab')
        tabs = [self._tab(tid) for tid in tab_ids]
        created = group_id is None
        if group_id is None:
            target_window = window_id if window_id is not None else tabs[0].window_id
            if target_window not in self._windows:
                raise SessionObjectNotFoundError('window', target_window)
            group = _Group(id=next(self._ids), window_id=target_window)
            self._groups[group.id] = group
        elif group_id not in self._groups:
            raise SessionObjectNotFoundError('group', group_id)
        else:
            group = self._groups[group_id]

        emptied: list[SessionId] = []
        for tab in tabs:
            previous = tab.group_id
            if tab.window_id != group.window_id:
                self._windows[tab.window_id].remove(tab)
                tab.window_id = group.window_id
                self._windows[group.window_id].append(tab)
            tab.group_id = group.id
            if previous is not None and previous != group.id and not self._group_tabs(previous):
                emptied.append(previous)
        self._keep_group_contiguous(group)

        if created:
            self._emit(GroupCreated(group=self._live_group(group)))
        else:
            self._emit(GroupUpdated(group=self._live_group(group)))
        for gid in emptied:
            self._emit(GroupRemoved(group=self._live_group(self._groups.pop(gid))))
        return group.id

    def _group_tabs(self, group_id: SessionId) -> list[_Tab]:
        return [tab for tabs in self._windows.values() for tab in tabs if tab.group_id == group_id]

    def _keep_group_contiguous(self, group: _Group) -> None:
        strip = self._windows[group.window_id]
        members = [tab for tab in strip if tab.group_id == group.id]
        first = strip.index(members[0])
        rest = [tab for tab in strip if tab.group_id != group.id]
        self._windows[group.window_id] = rest[:first] + members + rest[first:]

    async def remove_tabs(self, tab_ids: Sequence[SessionId]) -> None:
        self._check('remove_tabs')
        tabs = [self._tab(tid) for tid in tab_ids]
        for tab in tabs:
            self._windows[tab.window_id].remove(tab)

        touched_groups = {t.group_id for t in tabs if t.group_id is not None}
        removed_groups = [gid for gid in touched_groups if not self._group_tabs(gid)]
        removed_windows = [wid for wid in {t.window_id for t in tabs} if not self._windows[wid]]
        dropped = [self._live_group(self._groups.pop(gid)) for gid in removed_groups]
        for wid in removed_windows:
            del self._windows[wid]

        for tab in tabs:
            closing = tab.window_id in removed_windows
            self._emit(TabRemoved(tab_id=tab.id, window_id=tab.window_id, is_window_closing=closing))
        for live in dropped:
            self._emit(GroupRemoved(group=live))
        for wid in removed_windows:
            self._emit(WindowRemoved(window_id=wid))

    # ==========================================================================
    # User actions
    # ==========================================================================

    async def open_window(self) -> SessionId:
        """User opens a window (with its blank tab) and focuses it."""
        window = await self.create_window()
        await self.focus_window(window.id)
        return window.id

    async def open_group(
        self, window_id: SessionId, title: str, urls: Sequence[str], color: Color = 'grey'
    ) -> SessionId:
        """User opens ``urls`` in new tabs and groups them under ``title``."""
        tab_ids = [(await self.create_tab(window_id, url)).id for url in urls]
        group_id = await self.group_tabs(tab_ids, window_id=window_id)
        await self.update_group(group_id, title=title, color=color)
        return group_id

    async def navigate(self, tab_id: SessionId, url: str, title: str | None = None) -> None:
        """User loads ``url`` in a tab."""
        tab = self._tab(tab_id)
        tab.url = url
        tab.title = title or url
        self._emit(TabUpdated(tab_id=tab_id, change=TabChange(url=url, title=tab.title), tab=self._live_tab(tab)))

    async def close_tab(self, tab_id: SessionId) -> None:
        await self.remove_tabs([tab_id])

    async def close_window(self, window_id: SessionId) -> None:
        """User closes a window: its tabs and groups go with it."""
        if window_id not in self._windows:
            raise SessionObjectNotFoundError('window', window_id)
        await self.remove_tabs([tab.id for tab in self._windows[window_id]])

    async def drag_group(self, group_id: SessionId, window_id: SessionId) -> None:
        """
        User drags a whole group into another window.

        The browser reports this as every tab detaching then attaching, followed
        by a group move.
        """
        group = self._groups[group_id]
        tabs = self._group_tabs(group_id)
        old_window = group.window_id
        for tab in tabs:
            position = self._windows[old_window].index(tab)
            self._windows[old_window].remove(tab)
            self._emit(TabDetached(tab_id=tab.id, old_window_id=old_window, old_position=position))
        group.window_id = window_id
        for tab in tabs:
            tab.window_id = window_id
            self._windows[window_id].append(tab)
            position = len(self._windows[window_id]) - 1
            self._emit(TabAttached(tab_id=tab.id, new_window_id=window_id, new_position=position))
        self._emit(GroupMoved(group=self._live_group(group)))
        if not self._windows[old_window]:
            del self._windows[old_window]
            self._emit(WindowRemoved(window_id=old_window))

    def restart(self, id_start: int) -> None:
        """
        Browser restart: every live object vanishes without events and a new
        id sequence starts. Reopened windows are built with the user actions.
        """
        logger.debug(f'Session restart, new ids from {id_start}')
        self._windows.clear()
        self._groups.clear()
        self._focused = None
        self._ids = itertools.count(id_start)
