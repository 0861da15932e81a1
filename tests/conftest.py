"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tabbox.engine import TabBoxEngine
from tabbox.services.gateway import StorageGateway
from tabbox.services.reconcile import Reconciler
from tabbox.session.memory import InMemorySessionProvider
from tabbox.storage.memory import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def gateway(store: MemoryStore) -> StorageGateway:
    return StorageGateway(store)


@pytest.fixture
def provider() -> InMemorySessionProvider:
    return InMemorySessionProvider()


@pytest.fixture
def reconciler(provider: InMemorySessionProvider, gateway: StorageGateway) -> Reconciler:
    """Reconciler driven directly by the test (no event subscription)."""
    return Reconciler(provider, gateway)


@pytest.fixture
def engine(provider: InMemorySessionProvider, store: MemoryStore) -> TabBoxEngine:
    """Engine subscribed to the provider's events. Tests start it with ``async with``."""
    return TabBoxEngine(provider, store)
