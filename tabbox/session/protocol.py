"""
Session provider protocol.

The live browser session is an external collaborator: windows, tab groups and
tabs whose ids only live until the browser restarts. The engine talks to it
exclusively through this interface.

Error contract for every method:
- SessionObjectNotFoundError: the addressed window/group/tab does not exist
- SessionProviderError: any other failure
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from tabbox.schemas.live import LiveGroup, LiveTab, LiveWindow
from tabbox.schemas.types import Color, SessionId


@runtime_checkable
class SessionProvider(Protocol):
    """Protocol for live session backends."""

    # Windows
    async def list_windows(self) -> list[LiveWindow]: ...
    async def get_window(self, window_id: SessionId) -> LiveWindow: ...
    async def create_window(self) -> LiveWindow: ...
    async def focus_window(self, window_id: SessionId) -> None: ...
    async def get_last_focused_window(self) -> LiveWindow: ...

    # Tab groups
    async def list_groups(self, window_id: SessionId | None = None) -> list[LiveGroup]:
        """Groups in live order, optionally restricted to one window."""
        ...

    async def get_group(self, group_id: SessionId) -> LiveGroup: ...

    async def update_group(
        self,
        group_id: SessionId,
        *,
        title: str | None = None,
        color: Color | None = None,
        collapsed: bool | None = None,
    ) -> LiveGroup: ...

    # Tabs
    async def get_tab(self, tab_id: SessionId) -> LiveTab: ...

    async def query_tabs(self, *, group_id: SessionId | None = None, url: str | None = None) -> list[LiveTab]:
        """Tabs in live order matching every given filter."""
        ...

    async def create_tab(self, window_id: SessionId, url: str | None = None, active: bool = False) -> LiveTab: ...
    async def activate_tab(self, tab_id: SessionId) -> None: ...

    async def group_tabs(
        self,
        tab_ids: Sequence[SessionId],
        *,
        group_id: SessionId | None = None,
        window_id: SessionId | None = None,
    ) -> SessionId:
        """Add tabs to an existing group, or to a new group in ``window_id``. Returns the group id."""
        ...

    async def remove_tabs(self, tab_ids: Sequence[SessionId]) -> None: ...
