"""Storage backends for the persisted StorageDocument."""

from tabbox.storage.gist import GistStore
from tabbox.storage.local import LocalJsonStore
from tabbox.storage.memory import MemoryStore
from tabbox.storage.protocol import PersistentStore

__all__ = ['GistStore', 'LocalJsonStore', 'MemoryStore', 'PersistentStore']
