"""
Durable record schema.

The StorageDocument is the only persisted aggregate. It is read and replaced
as a whole; the records inside are mutated in place by the reconciler and the
resurrection engine between a read and the following replace.

Architecture (top-down):
1. StorageDocument - windows keyed by RecordKey
2. WindowRecord - groups keyed by RecordKey
3. GroupRecord - ordered tabs (open first, then closed history)
4. TabRecord - one tab, open or history
"""

from __future__ import annotations

import pydantic
from pydantic import Field

from tabbox.base_model import RecordModel
from tabbox.schemas.types import Color, RecordKey, SessionId


class TabRecord(RecordModel):
    """
    A stored tab.

    Closed tabs are history entries: they never carry a live id. Open tabs of a
    closed group keep closed=False (they are reopened with the group) but have
    their stale id cleared.
    """

    id: SessionId | None = None
    closed: bool = False
    title: str = ''
    url: str = ''

    @pydantic.model_validator(mode='after')
    def _closed_has_no_id(self) -> TabRecord:
        if self.closed:
            self.id = None
        return self


class GroupRecord(RecordModel):
    """A stored tab group, owned by exactly one WindowRecord."""

    id: SessionId | None = None
    closed: bool = False
    title: str = ''
    color: Color | None = None
    window_id: SessionId  # int() of the owning WindowRecord's key
    collapsed: bool = False
    position: int = 0
    tabs: list[TabRecord] = Field(default_factory=list)

    @pydantic.model_validator(mode='after')
    def _closed_has_no_id(self) -> GroupRecord:
        if self.closed:
            self.id = None
        return self

    @property
    def open_tabs(self) -> list[TabRecord]:
        return [t for t in self.tabs if not t.closed]


class WindowRecord(RecordModel):
    """A stored browser window."""

    id: SessionId | None = None
    closed: bool = False
    name: str | None = None  # Optional user-defined name
    groups: dict[RecordKey, GroupRecord] = Field(default_factory=dict)

    @pydantic.model_validator(mode='after')
    def _closed_has_no_id(self) -> WindowRecord:
        if self.closed:
            self.id = None
        return self


class StorageDocument(RecordModel):
    """Complete persisted state, stored under a single key."""

    windows: dict[RecordKey, WindowRecord] = Field(default_factory=dict)
