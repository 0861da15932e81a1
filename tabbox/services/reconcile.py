"""
Reconciler - keeps the durable record tree in sync with the live session.

Two kinds of passes:
- full reconcile (install, startup, manual refresh): every live window and
  group is synced, then every record that was not seen live is marked closed
  and windows left without groups are pruned
- single-entity syncs driven by session events

All passes follow the same pattern: read the whole document, edit it in memory
through the pure helpers in tabbox.domain, replace it once. Nothing here ever
deletes a group or tab record; the only automatic outcome of absence is
"closed".
"""

from __future__ import annotations

import logging

from tabbox import domain
from tabbox.domain import GroupLocation
from tabbox.exceptions import SessionProviderError
from tabbox.schemas.records import GroupRecord, StorageDocument, WindowRecord
from tabbox.schemas.types import RecordKey, SessionId
from tabbox.services.gateway import StorageGateway
from tabbox.services.identity import IdentityResolver
from tabbox.services.merge import merge_tabs, tabs_from_live
from tabbox.session.probe import probe
from tabbox.session.protocol import SessionProvider

__all__ = ['Reconciler']

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Full-tree and single-entity sync procedures.

    Groups whose tabs are detached from a window (mid drag between windows)
    are stripped from the document and parked here by live id until the
    attach arrives. A full reconcile puts back anything still parked.
    """

    def __init__(
        self,
        provider: SessionProvider,
        gateway: StorageGateway,
        resolver: IdentityResolver | None = None,
        max_attempts: int = 2,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            provider: Live session provider
            gateway: Storage gateway for the document
            resolver: Identity resolver (default: one over ``provider``)
            max_attempts: How many times a group sync checks for its window
                          record; every miss but the last runs a window sync
        """
        self.provider = provider
        self.gateway = gateway
        self.resolver = resolver or IdentityResolver(provider)
        self.max_attempts = max_attempts
        self.parked: dict[SessionId, GroupLocation] = {}

    # ==========================================================================
    # Full reconcile
    # ==========================================================================

    async def reconcile_all(self) -> StorageDocument:
        """
        Bring the whole document in line with the live session.

        Running it twice without live changes in between yields the same
        document. If the provider cannot list windows or groups, nothing is
        swept: a transient failure must not close every record.

        Returns:
            The reconciled document (as persisted)
        """
        document = await self.gateway.read()
        self.reinstate_parked(document)

        try:
            live_windows = await self.provider.list_windows()
            live_groups = await self.provider.list_groups()
        except SessionProviderError as e:
            logger.warning(f'Full reconcile skipped, cannot list the live session: {e}')
            return document

        logger.info(f'Full reconcile: {len(live_windows)} live windows, {len(live_groups)} live groups')

        synced_windows: set[SessionId] = set()
        for live_window in live_windows:
            await self._sync_window_in(document, live_window.id)
            synced_windows.add(live_window.id)

        synced_groups: set[SessionId] = set()
        for live_group in live_groups:
            if await self._sync_group_in(document, live_group.id, live_group.window_id, update_positions=True):
                synced_groups.add(live_group.id)

        for window in document.windows.values():
            await self._sweep_window(window, synced_windows, synced_groups)

        pruned = domain.prune_empty_windows(document)
        if pruned:
            logger.info(f'Pruned empty windows: {", ".join(pruned)}')

        await self.gateway.replace(document)
        return document

    async def _sweep_window(
        self,
        window: WindowRecord,
        synced_windows: set[SessionId],
        synced_groups: set[SessionId],
    ) -> None:
        """Mark closed whatever in ``window`` is not live. Records synced this pass are skipped."""
        if window.id is None or window.closed:
            domain.close_window(window)
            return
        if window.id not in synced_windows:
            if await probe(self.provider.get_window(window.id), f'get_window({window.id})') is None:
                logger.debug(f'Window {window.id} is gone, closing its record')
                domain.close_window(window)
                return

        for group in window.groups.values():
            if group.id is None:
                domain.close_group(group)
            elif group.id not in synced_groups:
                if await probe(self.provider.get_group(group.id), f'get_group({group.id})') is None:
                    logger.debug(f'Group {group.id} is gone, closing its record')
                    domain.close_group(group)

    def reinstate_parked(self, document: StorageDocument) -> None:
        """Put groups parked by a detach back into their window, as closed records."""
        for group_id, location in list(self.parked.items()):
            del self.parked[group_id]
            if domain.find_group_by_id(document, group_id) is not None:
                continue
            window_key = location.window_key
            if window_key not in document.windows:
                logger.info(f'Recreating window record {window_key} for parked group {group_id}')
                document.windows[window_key] = WindowRecord(id=None, closed=True)
            domain.close_group(location.group)
            domain.move_group(document, location, window_key)

    # ==========================================================================
    # Window sync
    # ==========================================================================

    async def sync_window(self, window_id: SessionId) -> RecordKey:
        """
        Ensure a record is bound to a live window.

        Returns:
            Key of the bound record
        """
        document = await self.gateway.read()
        key = await self._sync_window_in(document, window_id)
        await self.gateway.replace(document)
        return key

    async def _sync_window_in(self, document: StorageDocument, window_id: SessionId) -> RecordKey:
        key = str(window_id)
        window = document.windows.get(key)
        if window is not None:
            logger.debug(f'Window {window_id} found in storage, marking it open')
            window.id = window_id
            window.closed = False
            return key

        match = await self.resolver.match_window(document, window_id)
        if match is not None:
            logger.info(f'Binding live window {window_id} to stored window {match.window_key} (score {match.score})')
            return domain.rekey_window(document, match.window_key, window_id)

        logger.info(f'No stored window matches live window {window_id}, creating a new record')
        document.windows[key] = WindowRecord(id=window_id)
        return key

    # ==========================================================================
    # Group sync
    # ==========================================================================

    async def sync_group(
        self,
        group_id: SessionId,
        window_id: SessionId | None,
        update_positions: bool = False,
    ) -> None:
        """
        Sync one live group into the document.

        Args:
            group_id: Live group id
            window_id: Window the group is in, or None while it is detached
            update_positions: Also refresh the positions of the other groups
                              in the window (after creates and moves)
        """
        document = await self.gateway.read()
        if await self._sync_group_in(document, group_id, window_id, update_positions):
            await self.gateway.replace(document)

    def _window_ready(self, document: StorageDocument, window_id: SessionId) -> bool:
        window = document.windows.get(str(window_id))
        return window is not None and window.id == window_id

    async def _sync_group_in(
        self,
        document: StorageDocument,
        group_id: SessionId,
        window_id: SessionId | None,
        update_positions: bool,
    ) -> bool:
        """Returns False when nothing was changed (the live group is gone or the window never appeared)."""
        live_group = await probe(self.provider.get_group(group_id), f'get_group({group_id})')
        if live_group is None:
            return False

        if window_id is None:
            return self._park(document, group_id)

        live_tabs = await probe(self.provider.query_tabs(group_id=group_id), f'query_tabs({group_id})') or []

        for attempt in range(1, self.max_attempts + 1):
            if self._window_ready(document, window_id):
                break
            logger.debug(f'Window {window_id} not in storage (attempt {attempt}), syncing window first')
            if attempt < self.max_attempts:
                await self._sync_window_in(document, window_id)
        else:
            logger.warning(
                f'No record for window {window_id} after {self.max_attempts} attempts, skipping group {group_id}'
            )
            return False
        window_key = str(window_id)

        location = await self.resolver.match_group(document, live_group, window_id, self.parked)

        in_window = await probe(self.provider.list_groups(window_id), f'list_groups({window_id})') or []
        index = next((i for i, g in enumerate(in_window) if g.id == group_id), None)
        if index is not None:
            position = index
        else:
            position = location.group.position if location is not None else 0

        if location is not None:
            group = location.group
            logger.debug(f'Updating stored group {location.group_key} from live group {group_id}')
            group.tabs = merge_tabs(live_tabs, group.tabs)
            group.id = group_id
            group.closed = False
            group.title = live_group.title
            group.color = live_group.color
            group.collapsed = live_group.collapsed
            group.position = position
            self.parked.pop(group_id, None)
            if document.windows[window_key].groups.get(location.group_key) is not group:
                domain.move_group(document, location, window_key)
        else:
            logger.info(f'Creating stored group for live group {group_id} ({live_group.title!r})')
            group = GroupRecord(
                id=group_id,
                closed=False,
                title=live_group.title,
                color=live_group.color,
                window_id=window_id,
                collapsed=live_group.collapsed,
                position=position,
                tabs=tabs_from_live(live_tabs),
            )
            domain.insert_group(document, window_key, group)

        if update_positions:
            stored = {g.id: g for g in document.windows[window_key].groups.values() if g.id is not None}
            for pos, sibling in enumerate(in_window):
                if sibling.id in stored:
                    stored[sibling.id].position = pos

        return True

    def _park(self, document: StorageDocument, group_id: SessionId) -> bool:
        location = domain.find_group_by_id(document, group_id)
        if location is None:
            return False
        logger.debug(f'Group {group_id} detached from window {location.window_key}, parking its record')
        del document.windows[location.window_key].groups[location.group_key]
        self.parked[group_id] = location
        return True

    # ==========================================================================
    # Event-driven helpers
    # ==========================================================================

    async def sync_group_of_tab(
        self,
        tab_id: SessionId,
        window_id: SessionId | None = None,
        update_positions: bool = False,
        detached: bool = False,
    ) -> None:
        """
        Sync the group a live tab belongs to.

        Args:
            tab_id: Live tab id
            window_id: Window to sync into (default: the tab's current window)
            update_positions: Forwarded to sync_group
            detached: The tab is mid-move between windows
        """
        tab = await probe(self.provider.get_tab(tab_id), f'get_tab({tab_id})')
        if tab is None or tab.group_id is None:
            return
        target = None if detached else (window_id if window_id is not None else tab.window_id)
        await self.sync_group(tab.group_id, target, update_positions)

    async def sync_group_of_removed_tab(self, tab_id: SessionId, window_id: SessionId) -> None:
        """A tab is gone: re-sync the group that stored it so it turns into history."""
        document = await self.gateway.read()
        location = domain.find_group_by_tab_id(document, tab_id)
        if location is None or location.group.id is None:
            return
        await self.sync_group(location.group.id, window_id)

    async def close_group_record(self, group_id: SessionId) -> bool:
        """Mark the record of a removed live group closed. Returns whether one was found."""
        document = await self.gateway.read()
        location = domain.find_group_by_id(document, group_id)
        if location is None:
            return False
        logger.debug(f'Group {group_id} removed, closing stored group {location.group_key}')
        domain.close_group(location.group)
        await self.gateway.replace(document)
        return True

    async def close_window_record(self, window_id: SessionId) -> bool:
        """Mark the record of a removed live window (and its groups) closed."""
        document = await self.gateway.read()
        key = domain.find_window_key(document, window_id)
        if key is None:
            return False
        logger.debug(f'Window {window_id} removed, closing stored window {key}')
        domain.close_window(document.windows[key])
        await self.gateway.replace(document)
        return True
