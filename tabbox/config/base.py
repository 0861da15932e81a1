"""
Base configuration for tabbox.

Settings come from ``TABBOX_``-prefixed environment variables, optionally
backed by a .env file named in LOAD_ENV_FILE.
"""

from __future__ import annotations

import os
import pathlib
from typing import Literal, TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

T = TypeVar('T', bound='TabBoxSettings')


class TabBoxSettings(pydantic_settings.BaseSettings):
    """Engine and CLI configuration."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='TABBOX_',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown settings
    )

    # Application metadata
    APP_NAME: str = 'tabbox'
    VERSION: str = '0.1.0'

    # Persistence
    STORAGE_KEY: str = 'tabbox'  # Key the StorageDocument is stored under
    STORAGE_BACKEND: Literal['local', 'gist'] = 'local'
    STORAGE_DIR: pathlib.Path = pathlib.Path.home() / '.tabbox'
    GIST_ID: str | None = None
    GITHUB_TOKEN: str | None = None

    LOG_LEVEL: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR'] = 'INFO'

    # Window-record checks per group sync (each miss but the last syncs the window)
    SYNC_GROUP_MAX_ATTEMPTS: int = 2

    @pydantic.field_validator('SYNC_GROUP_MAX_ATTEMPTS')
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if not 1 <= v <= 3:
            raise ValueError('SYNC_GROUP_MAX_ATTEMPTS must be between 1-3')
        return v

    @pydantic.model_validator(mode='after')
    def validate_gist_backend(self) -> TabBoxSettings:
        """The gist backend needs a token, or an existing gist to read."""
        if self.STORAGE_BACKEND == 'gist' and not (self.GITHUB_TOKEN or self.GIST_ID):
            raise ValueError('STORAGE_BACKEND=gist requires GITHUB_TOKEN or GIST_ID')
        return self


def get_settings(settings_class: type[T] = TabBoxSettings, env_file: str | None = None) -> T:
    """
    Factory for creating settings with dynamic .env file loading.

    LOAD_ENV_FILE environment variable specifies custom .env file path.
    When unset, loads from environment variables only.

    Args:
        settings_class: Settings class to instantiate
        env_file: Optional path to .env file (overrides LOAD_ENV_FILE)

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If specified .env file doesn't exist
    """
    env_file_path = env_file or os.getenv('LOAD_ENV_FILE')

    if not env_file_path:
        return settings_class()

    resolved_path = pathlib.Path(env_file_path).resolve()
    if not resolved_path.exists():
        raise FileNotFoundError(f'Environment file not found: {resolved_path}')

    return settings_class(_env_file=resolved_path)


def lazy_settings(settings_class: type[T] = TabBoxSettings) -> T:
    """Proxy that instantiates settings on first attribute access."""
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))
