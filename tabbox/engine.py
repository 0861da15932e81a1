"""
TabBoxEngine - the one context object a host constructs per process.

It owns the FIFO serializer, the storage gateway and every service, turns
session events into reconcile steps and UI commands into CommandResults, and
publishes UI notifications (storage changed, window focused).

    engine = TabBoxEngine(provider, store)
    async with engine:                 # starts the queue, full reconcile
        result = await engine.execute(OpenGroup(window_key='3', group_key='7'))
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Self, assert_never

from tabbox.config.base import TabBoxSettings
from tabbox.config.runtime import build_store
from tabbox.exceptions import TabBoxError
from tabbox.schemas.commands import (
    CloseGroup,
    CollapseGroup,
    Command,
    CommandResult,
    DeleteClosedTabs,
    DeleteGroup,
    DeleteTab,
    DeleteWindow,
    GetFocusedWindowId,
    GetStorage,
    OpenGroup,
    OpenTab,
    OpenWindow,
    Resync,
    SetWindowName,
    StorageChanged,
    UiNotification,
    WindowFocused,
)
from tabbox.schemas.events import (
    GroupCreated,
    GroupMoved,
    GroupRemoved,
    GroupUpdated,
    Installed,
    SessionEvent,
    Startup,
    TabAttached,
    TabCreated,
    TabDetached,
    TabMoved,
    TabRemoved,
    TabUpdated,
    WindowFocusChanged,
    WindowRemoved,
)
from tabbox.schemas.records import StorageDocument
from tabbox.schemas.types import WINDOW_ID_NONE
from tabbox.services.gateway import StorageGateway
from tabbox.services.identity import IdentityResolver
from tabbox.services.reconcile import Reconciler
from tabbox.services.records import RecordCommands
from tabbox.services.resurrect import ResurrectionEngine
from tabbox.services.serializer import EventSerializer
from tabbox.session.probe import probe
from tabbox.session.protocol import SessionProvider
from tabbox.storage.protocol import PersistentStore

__all__ = ['NotificationListener', 'TabBoxEngine']

logger = logging.getLogger(__name__)

NotificationListener = Callable[[UiNotification], Awaitable[None] | None]


class TabBoxEngine:
    """Mirror and reconciliation engine for one live session."""

    def __init__(
        self,
        provider: SessionProvider,
        store: PersistentStore,
        *,
        storage_key: str = 'tabbox',
        max_attempts: int = 2,
    ) -> None:
        """
        Wire the services together.

        If the provider can publish session events (has ``subscribe``), the
        engine subscribes ``post_event`` to it.

        Args:
            provider: Live session provider
            store: Persistent store backend
            storage_key: Key the StorageDocument is stored under
            max_attempts: Window-record checks per group sync
        """
        self.provider = provider
        self.gateway = StorageGateway(store, storage_key)
        self.serializer = EventSerializer()
        self.resolver = IdentityResolver(provider)
        self.reconciler = Reconciler(provider, self.gateway, self.resolver, max_attempts)
        self.resurrection = ResurrectionEngine(provider, self.gateway)
        self.records = RecordCommands(self.gateway)
        self._listeners: list[NotificationListener] = []

        self.gateway.subscribe(self._on_storage_changed)
        subscribe = getattr(provider, 'subscribe', None)
        if callable(subscribe):
            subscribe(self.post_event)

    @classmethod
    def from_settings(cls, provider: SessionProvider, settings: TabBoxSettings) -> TabBoxEngine:
        return cls(
            provider,
            build_store(settings),
            storage_key=settings.STORAGE_KEY,
            max_attempts=settings.SYNC_GROUP_MAX_ATTEMPTS,
        )

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def start(self) -> None:
        """Start the queue worker and enqueue the startup full reconcile."""
        self.serializer.start()
        self.post_event(Startup())

    async def join(self) -> None:
        """Wait until every queued event and command has been handled."""
        await self.serializer.join()

    async def aclose(self) -> None:
        """Drain the queue, put back groups parked mid-move, stop the worker."""
        await self.serializer.join()
        if self.reconciler.parked:
            document = await self.gateway.read()
            self.reconciler.reinstate_parked(document)
            await self.gateway.replace(document)
        await self.serializer.aclose()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ==========================================================================
    # Notifications
    # ==========================================================================

    def subscribe(self, listener: NotificationListener) -> None:
        """Receive StorageChanged after every persisted write, and WindowFocused."""
        self._listeners.append(listener)

    async def _notify(self, notification: UiNotification) -> None:
        for listener in self._listeners:
            result = listener(notification)
            if inspect.isawaitable(result):
                await result

    async def _on_storage_changed(self, document: StorageDocument) -> None:
        await self._notify(StorageChanged())

    # ==========================================================================
    # Session events
    # ==========================================================================

    def post_event(self, event: SessionEvent) -> None:
        """Enqueue handling of a session event. Safe to call from sync provider callbacks."""
        self.serializer.post(lambda: self._handle_event(event), label=event.type)

    async def _handle_event(self, event: SessionEvent) -> None:
        reconciler = self.reconciler
        match event:
            case Installed() | Startup():
                await reconciler.reconcile_all()
            case GroupCreated(group=group) | GroupMoved(group=group):
                await reconciler.sync_group(group.id, group.window_id, update_positions=True)
            case GroupUpdated(group=group):
                await reconciler.sync_group(group.id, group.window_id)
            case GroupRemoved(group=group):
                await reconciler.close_group_record(group.id)
            case TabCreated(tab=tab):
                if tab.group_id is not None:
                    await reconciler.sync_group(tab.group_id, tab.window_id)
            case TabUpdated(change=change, tab=tab):
                if change.touches_record and tab.group_id is not None:
                    await reconciler.sync_group(tab.group_id, tab.window_id)
            case TabMoved(tab_id=tab_id, window_id=window_id):
                await reconciler.sync_group_of_tab(tab_id, window_id)
            case TabDetached(tab_id=tab_id):
                await reconciler.sync_group_of_tab(tab_id, update_positions=True, detached=True)
            case TabAttached(tab_id=tab_id, new_window_id=window_id):
                await reconciler.sync_group_of_tab(tab_id, window_id, update_positions=True)
            case TabRemoved(tab_id=tab_id, window_id=window_id, is_window_closing=closing):
                # The window-removed event closes the whole window, keeping its tabs reopenable
                if not closing:
                    await reconciler.sync_group_of_removed_tab(tab_id, window_id)
            case WindowRemoved(window_id=window_id):
                await reconciler.close_window_record(window_id)
            case WindowFocusChanged(window_id=window_id):
                if window_id != WINDOW_ID_NONE:
                    await self._notify(WindowFocused(window_id=window_id))
            case _:
                assert_never(event)

    # ==========================================================================
    # UI commands
    # ==========================================================================

    async def execute(self, command: Command) -> CommandResult:
        """
        Run a UI command through the queue and wait for its result.

        Domain failures (missing records, provider errors) come back as
        ``CommandResult(ok=False)``; anything else propagates.
        """
        self.serializer.start()
        return await self.serializer.submit(lambda: self._run_command(command), label=command.type)

    async def _run_command(self, command: Command) -> CommandResult:
        try:
            return await self._dispatch(command)
        except TabBoxError as e:
            logger.warning(f'Command {command.type} failed: {e}')
            return CommandResult.failure(str(e))

    async def _dispatch(self, command: Command) -> CommandResult:
        match command:
            case OpenWindow(window_key=window_key):
                window = await self.resurrection.resurrect_window(window_key, restore_first_group=True)
                return CommandResult(window_id=window.window_id)
            case OpenGroup(window_key=window_key, group_key=group_key):
                group = await self.resurrection.resurrect_group(window_key, group_key)
                return CommandResult(window_id=group.window_id, group_id=group.group_id)
            case OpenTab(window_key=window_key, group_key=group_key, tab_id=tab_id, url=url):
                opened = await self.resurrection.resurrect_tab(window_key, group_key, tab_id, url)
                return CommandResult(tab_id=opened)
            case GetFocusedWindowId():
                focused = await probe(self.provider.get_last_focused_window(), 'get_last_focused_window')
                return CommandResult(window_id=focused.id if focused is not None else None)
            case GetStorage():
                return CommandResult(document=await self.records.get_document())
            case CloseGroup(group_id=group_id):
                # A group with no live tabs is already gone; nothing to remove
                tabs = await self.provider.query_tabs(group_id=group_id)
                if tabs:
                    await self.provider.remove_tabs([t.id for t in tabs])
                return CommandResult(group_id=group_id)
            case CollapseGroup(group_id=group_id):
                await self.provider.update_group(group_id, collapsed=True)
                return CommandResult(group_id=group_id)
            case Resync():
                return CommandResult(document=await self.reconciler.reconcile_all())
            case DeleteWindow(window_key=window_key):
                await self.records.delete_window(window_key)
            case DeleteGroup(window_key=window_key, group_key=group_key):
                await self.records.delete_group(window_key, group_key)
            case DeleteTab(window_key=window_key, group_key=group_key, tab_id=tab_id, url=url):
                await self.records.delete_tab(window_key, group_key, tab_id=tab_id, url=url)
            case DeleteClosedTabs(window_key=window_key, group_key=group_key):
                await self.records.delete_closed_tabs(window_key, group_key)
            case SetWindowName(window_key=window_key, name=name):
                await self.records.set_window_name(window_key, name)
            case _:
                assert_never(command)
        return CommandResult()
