"""Tests for settings loading and runtime wiring."""

from __future__ import annotations

import logging

import pydantic
import pytest

from tabbox.config import TabBoxSettings, build_store, configure_logging, get_settings, lazy_settings
from tabbox.storage.gist import GistStore
from tabbox.storage.local import LocalJsonStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv('LOAD_ENV_FILE', raising=False)
    for name in ('TABBOX_STORAGE_BACKEND', 'TABBOX_GITHUB_TOKEN', 'TABBOX_GIST_ID', 'TABBOX_SYNC_GROUP_MAX_ATTEMPTS'):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = get_settings()

    assert settings.STORAGE_KEY == 'tabbox'
    assert settings.STORAGE_BACKEND == 'local'
    assert settings.SYNC_GROUP_MAX_ATTEMPTS == 2
    assert settings.LOG_LEVEL == 'INFO'


def test_environment_override(monkeypatch, tmp_path):
    monkeypatch.setenv('TABBOX_STORAGE_DIR', str(tmp_path))
    monkeypatch.setenv('TABBOX_SYNC_GROUP_MAX_ATTEMPTS', '3')

    settings = get_settings()

    assert settings.STORAGE_DIR == tmp_path
    assert settings.SYNC_GROUP_MAX_ATTEMPTS == 3


def test_env_file(tmp_path):
    env_file = tmp_path / '.env'
    env_file.write_text('TABBOX_STORAGE_KEY=work-laptop\n')

    assert get_settings(TabBoxSettings, env_file=str(env_file)).STORAGE_KEY == 'work-laptop'
    with pytest.raises(FileNotFoundError):
        get_settings(TabBoxSettings, env_file=str(tmp_path / 'missing.env'))


def test_invalid_values_are_rejected(monkeypatch):
    monkeypatch.setenv('TABBOX_SYNC_GROUP_MAX_ATTEMPTS', '5')
    with pytest.raises(pydantic.ValidationError, match='SYNC_GROUP_MAX_ATTEMPTS'):
        get_settings()

    monkeypatch.setenv('TABBOX_SYNC_GROUP_MAX_ATTEMPTS', '2')
    monkeypatch.setenv('TABBOX_STORAGE_BACKEND', 'gist')
    with pytest.raises(pydantic.ValidationError, match='GITHUB_TOKEN'):
        get_settings()


def test_lazy_settings_load_on_first_access(monkeypatch):
    settings = lazy_settings(TabBoxSettings)
    monkeypatch.setenv('TABBOX_STORAGE_KEY', 'late')

    assert settings.STORAGE_KEY == 'late'


def test_build_store(tmp_path):
    local = build_store(TabBoxSettings(STORAGE_DIR=tmp_path))
    gist = build_store(TabBoxSettings(STORAGE_BACKEND='gist', GITHUB_TOKEN='t', GIST_ID='abc'))

    assert isinstance(local, LocalJsonStore) and local.base_path == tmp_path
    assert isinstance(gist, GistStore) and gist.gist_id == 'abc'


def test_configure_logging_sets_root_level():
    root = logging.getLogger()
    previous = root.level
    try:
        configure_logging('DEBUG')
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(previous)
