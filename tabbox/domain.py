"""
Pure mutation helpers for the durable record tree.

No I/O happens here: every function takes a StorageDocument (or a record) that
the caller has read from the Storage Gateway, edits it in place, and leaves it
to the caller to persist the result.

Key discipline:
- A record is keyed by ``str(live id)`` when it is created or rebound.
- A group's ``window_id`` always equals ``int(key)`` of the window holding it.
- When a key is needed for a different record, the current occupant is moved
  to a spare negative key (never a valid live id) instead of being dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

import attrs

from tabbox.schemas.records import GroupRecord, StorageDocument, TabRecord, WindowRecord
from tabbox.schemas.types import RecordKey, SessionId

__all__ = [
    'GroupLocation',
    'close_group',
    'close_window',
    'find_group_by_id',
    'find_group_by_tab_id',
    'find_groups_by_title',
    'find_window_key',
    'insert_group',
    'iter_groups',
    'move_group',
    'prune_empty_windows',
    'rekey_group',
    'rekey_window',
    'set_tab_open',
    'spare_key',
]

logger = logging.getLogger(__name__)


@attrs.define(frozen=True)
class GroupLocation:
    """Where a GroupRecord currently lives in the document."""

    window_key: RecordKey
    group_key: RecordKey
    group: GroupRecord


# ==============================================================================
# Lookup
# ==============================================================================


def iter_groups(document: StorageDocument) -> Iterator[GroupLocation]:
    for window_key, window in document.windows.items():
        for group_key, group in window.groups.items():
            yield GroupLocation(window_key, group_key, group)


def find_group_by_id(document: StorageDocument, group_id: SessionId | None) -> GroupLocation | None:
    if group_id is None:
        return None
    return next((loc for loc in iter_groups(document) if loc.group.id == group_id), None)


def find_groups_by_title(document: StorageDocument, window_key: RecordKey, title: str) -> list[GroupLocation]:
    """All groups titled ``title`` in one window. Empty titles never match."""
    window = document.windows.get(window_key)
    if window is None or not title:
        return []
    return [GroupLocation(window_key, key, g) for key, g in window.groups.items() if g.title == title]


def find_group_by_tab_id(document: StorageDocument, tab_id: SessionId) -> GroupLocation | None:
    for loc in iter_groups(document):
        if any(t.id == tab_id for t in loc.group.tabs):
            return loc
    return None


def find_window_key(document: StorageDocument, window_id: SessionId) -> RecordKey | None:
    """Key of the record bound to a live window: by id first, then by key."""
    for key, window in document.windows.items():
        if window.id == window_id:
            return key
    key = str(window_id)
    return key if key in document.windows else None


def spare_key(keys: Mapping[RecordKey, object]) -> RecordKey:
    """A fresh negative key below every numeric key in ``keys``."""
    numeric = [int(k) for k in keys if k.lstrip('-').isdigit()]
    return str(min([0, *numeric]) - 1)


# ==============================================================================
# Closing
# ==============================================================================


def close_group(group: GroupRecord) -> None:
    """
    Mark a group closed, keeping its tabs.

    Open tabs stay non-closed so that reopening the group brings them back,
    but their live ids are stale now and are cleared.
    """
    group.closed = True
    group.id = None
    for tab in group.tabs:
        tab.id = None


def close_window(window: WindowRecord) -> None:
    window.closed = True
    window.id = None
    for group in window.groups.values():
        close_group(group)


# ==============================================================================
# Moving and rekeying
# ==============================================================================


def _free_window_key(document: StorageDocument, key: RecordKey, keep: WindowRecord) -> None:
    occupant = document.windows.get(key)
    if occupant is None or occupant is keep:
        return
    new_key = spare_key(document.windows)
    logger.info(f'Window key {key} is taken by a stale record, moving it to {new_key}')
    close_window(occupant)
    del document.windows[key]
    document.windows[new_key] = occupant
    for group in occupant.groups.values():
        group.window_id = int(new_key)


def _free_group_key(window: WindowRecord, key: RecordKey, keep: GroupRecord) -> None:
    occupant = window.groups.get(key)
    if occupant is None or occupant is keep:
        return
    new_key = spare_key(window.groups)
    logger.info(f'Group key {key} is taken by another record, moving it to {new_key}')
    del window.groups[key]
    window.groups[new_key] = occupant


def rekey_window(document: StorageDocument, old_key: RecordKey, window_id: SessionId) -> RecordKey:
    """
    Bind a WindowRecord to a live window id.

    Marks the record open, re-keys it to ``str(window_id)`` and points every
    contained group at the new window id.

    Returns:
        The record's new key
    """
    window = document.windows[old_key]
    new_key = str(window_id)
    window.id = window_id
    window.closed = False
    for group in window.groups.values():
        group.window_id = window_id
    if new_key != old_key:
        _free_window_key(document, new_key, keep=window)
        del document.windows[old_key]
        document.windows[new_key] = window
    return new_key


def rekey_group(window: WindowRecord, old_key: RecordKey, group_id: SessionId) -> RecordKey:
    """Re-key a group inside its window to ``str(group_id)``."""
    group = window.groups[old_key]
    new_key = str(group_id)
    if new_key != old_key:
        _free_group_key(window, new_key, keep=group)
        del window.groups[old_key]
        window.groups[new_key] = group
    return new_key


def insert_group(document: StorageDocument, window_key: RecordKey, group: GroupRecord) -> RecordKey:
    """Add a new group keyed by its live id (or a spare key when it has none)."""
    window = document.windows[window_key]
    key = str(group.id) if group.id is not None else spare_key(window.groups)
    _free_group_key(window, key, keep=group)
    group.window_id = int(window_key)
    window.groups[key] = group
    return key


def move_group(document: StorageDocument, location: GroupLocation, to_window_key: RecordKey) -> RecordKey:
    """
    Transfer a group record to another window, keeping its key when possible.

    The record object is moved, never copied, so exactly one window owns it.

    Returns:
        The group's key in the target window
    """
    target = document.windows[to_window_key]
    source = document.windows.get(location.window_key)
    if source is not None and source.groups.get(location.group_key) is location.group:
        del source.groups[location.group_key]
    key = location.group_key
    if key in target.groups and target.groups[key] is not location.group:
        key = str(location.group.id) if location.group.id is not None else spare_key(target.groups)
        _free_group_key(target, key, keep=location.group)
    location.group.window_id = int(to_window_key)
    target.groups[key] = location.group
    logger.debug(f'Moved group {location.group_key} from window {location.window_key} to {to_window_key} as {key}')
    return key


def prune_empty_windows(document: StorageDocument) -> list[RecordKey]:
    """Delete windows holding no groups. Returns the removed keys."""
    empty = [key for key, window in document.windows.items() if not window.groups]
    for key in empty:
        del document.windows[key]
    return empty


# ==============================================================================
# Record edits
# ==============================================================================


def set_tab_open(tab: TabRecord, tab_id: SessionId, title: str) -> None:
    tab.id = tab_id
    tab.closed = False
    tab.title = title
