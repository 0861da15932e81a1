"""
Snapshots of live session objects as reported by the session provider.

These are immutable values: a snapshot describes the live object at the moment
it was fetched and goes stale as soon as the next session event arrives.
"""

from __future__ import annotations

from tabbox.base_model import StrictModel
from tabbox.schemas.types import UNTITLED, Color, SessionId


class LiveWindow(StrictModel):
    id: SessionId
    focused: bool = False


class LiveGroup(StrictModel):
    id: SessionId
    window_id: SessionId
    title: str = ''
    color: Color | None = None
    collapsed: bool = False


class LiveTab(StrictModel):
    id: SessionId
    window_id: SessionId
    group_id: SessionId | None = None  # None when the tab is ungrouped
    index: int = 0
    title: str = ''
    url: str = ''
    active: bool = False

    @property
    def display_title(self) -> str:
        """Title as stored in records: falls back to the URL, then 'Untitled'."""
        return self.title or self.url or UNTITLED
