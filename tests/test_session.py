"""Tests for the in-memory session provider and probing."""

from __future__ import annotations

import logging

import pytest

from tabbox.exceptions import SessionObjectNotFoundError
from tabbox.schemas.events import GroupRemoved, TabRemoved, WindowRemoved
from tabbox.session import InMemorySessionProvider, SessionProvider, probe


def test_provider_satisfies_the_protocol(provider):
    assert isinstance(provider, SessionProvider)


@pytest.mark.asyncio
async def test_group_and_window_disappear_with_their_last_tab(provider: InMemorySessionProvider):
    events = []
    provider.subscribe(events.append)
    window_id = await provider.open_window()
    group_id = await provider.open_group(window_id, 'Work', ['https://a.example'])
    events.clear()

    await provider.close_window(window_id)

    assert [type(e) for e in events] == [TabRemoved, TabRemoved, GroupRemoved, WindowRemoved]
    assert all(e.is_window_closing for e in events if isinstance(e, TabRemoved))
    with pytest.raises(SessionObjectNotFoundError):
        await provider.get_group(group_id)
    assert await provider.list_windows() == []


@pytest.mark.asyncio
async def test_group_order_follows_the_tab_strip(provider: InMemorySessionProvider):
    window_id = await provider.open_window()
    first = await provider.open_group(window_id, 'One', ['https://1.example'])
    second = await provider.open_group(window_id, 'Two', ['https://2.example'])

    assert [g.id for g in await provider.list_groups(window_id)] == [first, second]


@pytest.mark.asyncio
async def test_probe_maps_failures_to_none(provider: InMemorySessionProvider, caplog):
    assert await probe(provider.get_window(42), 'get_window(42)') is None

    provider.failing.add('list_windows')
    with caplog.at_level(logging.WARNING):
        assert await probe(provider.list_windows(), 'list_windows') is None

    assert 'list_windows failed, treating as absent' in caplog.text
