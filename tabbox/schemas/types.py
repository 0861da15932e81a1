"""
Shared type definitions for schemas.

Live ids come from the session provider and are only valid until the browser
restarts. Record keys are storage keys: ``str(live id)`` at the time a record
was created or last rebound, or a negative number once a record had to make
room for a colliding live id.
"""

from __future__ import annotations

from typing import Literal

SessionId = int
"""Session-scoped live id of a window, tab group or tab."""

RecordKey = str
"""Storage key of a window or group record."""

Color = Literal['grey', 'blue', 'red', 'yellow', 'green', 'pink', 'purple', 'cyan', 'orange']
"""Tab group colors offered by the browser."""

WINDOW_ID_NONE: SessionId = -1
"""Sentinel window id the browser reports when focus leaves all windows."""

UNTITLED = 'Untitled'
