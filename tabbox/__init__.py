"""tabbox - keeps a durable, reopenable record of a browser's windows, tab groups and tabs."""

from tabbox.engine import TabBoxEngine
from tabbox.exceptions import (
    RecordNotFoundError,
    SessionObjectNotFoundError,
    SessionProviderError,
    StorageError,
    TabBoxError,
)

__all__ = [
    'RecordNotFoundError',
    'SessionObjectNotFoundError',
    'SessionProviderError',
    'StorageError',
    'TabBoxEngine',
    'TabBoxError',
]
