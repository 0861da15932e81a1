"""
Session events consumed by the engine.

Closed union discriminated on ``type``. The browser's own notification feed is
translated into these models by whatever adapter hosts the engine;
InMemorySessionProvider emits them directly.
"""

from __future__ import annotations

from typing import Annotated, Literal

import pydantic

from tabbox.base_model import StrictModel
from tabbox.schemas.live import LiveGroup, LiveTab
from tabbox.schemas.types import SessionId

# ==============================================================================
# Lifecycle
# ==============================================================================


class Installed(StrictModel):
    """Extension installed or updated - full reconcile."""

    type: Literal['installed'] = 'installed'


class Startup(StrictModel):
    """Browser started - full reconcile."""

    type: Literal['startup'] = 'startup'


# ==============================================================================
# Windows
# ==============================================================================


class WindowFocusChanged(StrictModel):
    type: Literal['window_focus_changed'] = 'window_focus_changed'
    window_id: SessionId


class WindowRemoved(StrictModel):
    type: Literal['window_removed'] = 'window_removed'
    window_id: SessionId


# ==============================================================================
# Tab groups
# ==============================================================================


class GroupCreated(StrictModel):
    type: Literal['group_created'] = 'group_created'
    group: LiveGroup


class GroupUpdated(StrictModel):
    type: Literal['group_updated'] = 'group_updated'
    group: LiveGroup


class GroupMoved(StrictModel):
    type: Literal['group_moved'] = 'group_moved'
    group: LiveGroup


class GroupRemoved(StrictModel):
    type: Literal['group_removed'] = 'group_removed'
    group: LiveGroup


# ==============================================================================
# Tabs
# ==============================================================================


class TabCreated(StrictModel):
    type: Literal['tab_created'] = 'tab_created'
    tab: LiveTab


class TabChange(StrictModel):
    """Fields that changed in a tab update (unset fields did not change)."""

    url: str | None = None
    title: str | None = None
    status: str | None = None

    @property
    def touches_record(self) -> bool:
        """Only url and title changes are reflected in TabRecords."""
        return self.url is not None or self.title is not None


class TabUpdated(StrictModel):
    type: Literal['tab_updated'] = 'tab_updated'
    tab_id: SessionId
    change: TabChange
    tab: LiveTab


class TabMoved(StrictModel):
    type: Literal['tab_moved'] = 'tab_moved'
    tab_id: SessionId
    window_id: SessionId
    from_index: int
    to_index: int


class TabDetached(StrictModel):
    type: Literal['tab_detached'] = 'tab_detached'
    tab_id: SessionId
    old_window_id: SessionId
    old_position: int = 0


class TabAttached(StrictModel):
    type: Literal['tab_attached'] = 'tab_attached'
    tab_id: SessionId
    new_window_id: SessionId
    new_position: int = 0


class TabRemoved(StrictModel):
    type: Literal['tab_removed'] = 'tab_removed'
    tab_id: SessionId
    window_id: SessionId
    is_window_closing: bool = False


# ==============================================================================
# Union
# ==============================================================================

SessionEvent = Annotated[
    Installed
    | Startup
    | WindowFocusChanged
    | WindowRemoved
    | GroupCreated
    | GroupUpdated
    | GroupMoved
    | GroupRemoved
    | TabCreated
    | TabUpdated
    | TabMoved
    | TabDetached
    | TabAttached
    | TabRemoved,
    pydantic.Field(discriminator='type'),
]

SessionEventAdapter: pydantic.TypeAdapter[SessionEvent] = pydantic.TypeAdapter(SessionEvent)
