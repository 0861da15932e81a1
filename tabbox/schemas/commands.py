"""
UI command API.

Every command is a typed message discriminated on ``type`` and is executed
through the same FIFO queue as session events. The engine answers each one
with a CommandResult; UI notifications flow the other way.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

import pydantic

from tabbox.base_model import StrictModel
from tabbox.schemas.records import StorageDocument
from tabbox.schemas.types import RecordKey, SessionId

# ==============================================================================
# Resurrection / focus
# ==============================================================================


class OpenWindow(StrictModel):
    """Focus the window, or recreate it (and its first group) if closed."""

    type: Literal['open_window'] = 'open_window'
    window_key: RecordKey


class OpenGroup(StrictModel):
    type: Literal['open_group'] = 'open_group'
    window_key: RecordKey
    group_key: RecordKey


class OpenTab(StrictModel):
    """Open a stored tab: an open one by live id, a history entry by URL."""

    type: Literal['open_tab'] = 'open_tab'
    window_key: RecordKey
    group_key: RecordKey
    tab_id: SessionId | None = None
    url: str


class GetFocusedWindowId(StrictModel):
    type: Literal['get_focused_window_id'] = 'get_focused_window_id'


class GetStorage(StrictModel):
    type: Literal['get_storage'] = 'get_storage'


class CloseGroup(StrictModel):
    """Close the live tabs of a group. The record stays as history."""

    type: Literal['close_group'] = 'close_group'
    group_id: SessionId


class CollapseGroup(StrictModel):
    type: Literal['collapse_group'] = 'collapse_group'
    group_id: SessionId


class Resync(StrictModel):
    """Manual refresh - full reconcile."""

    type: Literal['resync'] = 'resync'


# ==============================================================================
# Explicit record edits
# ==============================================================================


class DeleteWindow(StrictModel):
    type: Literal['delete_window'] = 'delete_window'
    window_key: RecordKey


class DeleteGroup(StrictModel):
    type: Literal['delete_group'] = 'delete_group'
    window_key: RecordKey
    group_key: RecordKey


class DeleteTab(StrictModel):
    """Delete a tab record by live id, or the first record without a live id that has the URL."""

    type: Literal['delete_tab'] = 'delete_tab'
    window_key: RecordKey
    group_key: RecordKey
    tab_id: SessionId | None = None
    url: str | None = None

    @pydantic.model_validator(mode='after')
    def _has_target(self) -> DeleteTab:
        if self.tab_id is None and not self.url:
            raise ValueError('delete_tab requires tab_id or url')
        return self


class SetWindowName(StrictModel):
    type: Literal['set_window_name'] = 'set_window_name'
    window_key: RecordKey
    name: str | None = None


class DeleteClosedTabs(StrictModel):
    type: Literal['delete_closed_tabs'] = 'delete_closed_tabs'
    window_key: RecordKey
    group_key: RecordKey


Command = Annotated[
    OpenWindow
    | OpenGroup
    | OpenTab
    | GetFocusedWindowId
    | GetStorage
    | CloseGroup
    | CollapseGroup
    | Resync
    | DeleteWindow
    | DeleteGroup
    | DeleteTab
    | SetWindowName
    | DeleteClosedTabs,
    pydantic.Field(discriminator='type'),
]

CommandAdapter: pydantic.TypeAdapter[Command] = pydantic.TypeAdapter(Command)


def parse_command(payload: dict[str, Any]) -> Command:
    """
    Validate a raw UI message into a typed command.

    Raises:
        pydantic.ValidationError: If the message is not a known command
    """
    return CommandAdapter.validate_python(payload)


# ==============================================================================
# Results and notifications
# ==============================================================================


class CommandResult(StrictModel):
    """Response to a command. Only the fields relevant to the command are set."""

    ok: bool = True
    error: str | None = None
    window_id: SessionId | None = None
    group_id: SessionId | None = None
    tab_id: SessionId | None = None
    document: StorageDocument | None = None

    @classmethod
    def failure(cls, error: str) -> CommandResult:
        return cls(ok=False, error=error)


class StorageChanged(StrictModel):
    type: Literal['storage_changed'] = 'storage_changed'


class WindowFocused(StrictModel):
    type: Literal['window_focused'] = 'window_focused'
    window_id: SessionId


UiNotification = Annotated[StorageChanged | WindowFocused, pydantic.Field(discriminator='type')]
