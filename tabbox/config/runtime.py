"""
Runtime wiring from settings: logging setup and storage backend selection.
"""

from __future__ import annotations

import logging

from tabbox.config.base import TabBoxSettings
from tabbox.storage.gist import GistStore
from tabbox.storage.local import LocalJsonStore
from tabbox.storage.protocol import PersistentStore

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(level: str = 'INFO') -> None:
    """Install a stderr handler on the root logger. Calling it again only changes the level."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)


def build_store(settings: TabBoxSettings) -> PersistentStore:
    """Return the persistent store selected by STORAGE_BACKEND."""
    match settings.STORAGE_BACKEND:
        case 'local':
            return LocalJsonStore(settings.STORAGE_DIR.expanduser())
        case 'gist':
            return GistStore(token=settings.GITHUB_TOKEN or '', gist_id=settings.GIST_ID)
