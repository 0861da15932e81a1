"""Configuration: settings singleton, logging setup and store selection."""

from __future__ import annotations

from tabbox.config.base import TabBoxSettings, get_settings, lazy_settings
from tabbox.config.runtime import build_store, configure_logging

# Module-level singleton (lazy-loaded)
settings = lazy_settings(TabBoxSettings)

__all__ = ['TabBoxSettings', 'build_store', 'configure_logging', 'get_settings', 'lazy_settings', 'settings']
