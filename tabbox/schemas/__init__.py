"""Pydantic schemas: durable records, live snapshots, session events and UI commands."""

from tabbox.schemas.records import GroupRecord, StorageDocument, TabRecord, WindowRecord
from tabbox.schemas.types import WINDOW_ID_NONE, Color, RecordKey, SessionId

__all__ = [
    'Color',
    'GroupRecord',
    'RecordKey',
    'SessionId',
    'StorageDocument',
    'TabRecord',
    'WINDOW_ID_NONE',
    'WindowRecord',
]
