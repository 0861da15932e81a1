"""Tests for full and single-entity reconciliation."""

from __future__ import annotations

import pytest

from tabbox import domain
from tabbox.schemas.records import GroupRecord, StorageDocument, TabRecord, WindowRecord
from tabbox.services.gateway import StorageGateway
from tabbox.services.reconcile import Reconciler
from tabbox.session.memory import InMemorySessionProvider
from tabbox.storage.memory import MemoryStore


async def open_work_window(provider: InMemorySessionProvider) -> tuple[int, int]:
    window_id = await provider.open_window()
    group_id = await provider.open_group(window_id, 'Work', ['https://a.example', 'https://b.example'], color='blue')
    return window_id, group_id


@pytest.mark.asyncio
async def test_full_reconcile_mirrors_the_live_session(provider, gateway, reconciler):
    window_id, group_id = await open_work_window(provider)
    await provider.open_group(window_id, 'Docs', ['https://docs.example'])

    document = await reconciler.reconcile_all()

    window = document.windows[str(window_id)]
    assert window.id == window_id and not window.closed
    work = window.groups[str(group_id)]
    assert (work.title, work.color, work.position, work.window_id) == ('Work', 'blue', 0, window_id)
    assert [t.url for t in work.tabs] == ['https://a.example', 'https://b.example']
    assert [g.title for g in sorted(window.groups.values(), key=lambda g: g.position)] == ['Work', 'Docs']
    assert (await gateway.read()).model_dump() == document.model_dump()


@pytest.mark.asyncio
async def test_full_reconcile_is_idempotent(provider, store: MemoryStore, reconciler):
    window_id, group_id = await open_work_window(provider)
    await reconciler.reconcile_all()
    await provider.close_tab((await provider.query_tabs(group_id=group_id))[0].id)
    await provider.open_group(window_id, 'Docs', ['https://docs.example'])

    await reconciler.reconcile_all()
    first = store.data['tabbox']
    await reconciler.reconcile_all()

    assert store.data['tabbox'] == first


@pytest.mark.asyncio
async def test_records_not_seen_live_are_closed_not_removed(provider, gateway, reconciler):
    window_id, group_id = await open_work_window(provider)
    await reconciler.reconcile_all()

    await provider.close_window(window_id)
    document = await reconciler.reconcile_all()

    window = document.windows[str(window_id)]
    group = window.groups[str(group_id)]
    assert window.closed and window.id is None
    assert group.closed and group.id is None
    assert [(t.url, t.closed, t.id) for t in group.tabs] == [
        ('https://a.example', False, None),
        ('https://b.example', False, None),
    ]


@pytest.mark.asyncio
async def test_provider_failure_skips_the_sweep(provider, gateway, reconciler):
    window_id, _ = await open_work_window(provider)
    await reconciler.reconcile_all()

    provider.failing.add('list_windows')
    await reconciler.reconcile_all()

    assert not (await gateway.read()).windows[str(window_id)].closed


@pytest.mark.asyncio
async def test_pruning_after_explicit_group_delete(provider, gateway, reconciler):
    document = StorageDocument(
        windows={'4': WindowRecord(closed=True, groups={'8': GroupRecord(closed=True, title='Old', window_id=4)})}
    )
    await gateway.replace(document)

    document = await gateway.read()
    del document.windows['4'].groups['8']
    await gateway.replace(document)
    assert '4' in (await gateway.read()).windows

    document = await reconciler.reconcile_all()

    assert document.windows == {}


@pytest.mark.asyncio
async def test_window_rebinds_to_record_with_most_shared_titles(provider, gateway, reconciler):
    await gateway.replace(
        StorageDocument(
            windows={
                '1': WindowRecord(
                    closed=True,
                    name='Desk',
                    groups={
                        '2': GroupRecord(closed=True, title='Work', window_id=1),
                        '3': GroupRecord(closed=True, title='Docs', window_id=1),
                    },
                )
            }
        )
    )
    provider.restart(id_start=100)
    window_id = await provider.open_window()
    for title in ('Work', 'Docs', 'Extra'):
        await provider.open_group(window_id, title, [f'https://{title.lower()}.example'])

    key = await reconciler.sync_window(window_id)

    document = await gateway.read()
    assert key == str(window_id)
    assert list(document.windows) == [str(window_id)]
    window = document.windows[key]
    assert window.name == 'Desk' and window.id == window_id and not window.closed
    assert {g.window_id for g in window.groups.values()} == {window_id}


@pytest.mark.asyncio
async def test_restart_rebinds_groups_by_title_and_keeps_history(provider, gateway, reconciler):
    window_id, group_id = await open_work_window(provider)
    await reconciler.reconcile_all()
    await provider.close_tab((await provider.query_tabs(group_id=group_id, url='https://b.example'))[0].id)
    await reconciler.sync_group(group_id, window_id)

    provider.restart(id_start=500)
    new_window = await provider.open_window()
    new_group = await provider.open_group(new_window, 'Work', ['https://a.example', 'https://c.example'])
    document = await reconciler.reconcile_all()

    assert list(document.windows) == [str(new_window)]
    (group,) = document.windows[str(new_window)].groups.values()
    assert group.id == new_group
    assert [(t.url, t.closed) for t in group.tabs] == [
        ('https://a.example', False),
        ('https://c.example', False),
        ('https://b.example', True),
    ]


@pytest.mark.asyncio
async def test_same_titled_live_groups_keep_separate_records(provider, gateway, reconciler):
    await open_work_window(provider)
    await reconciler.reconcile_all()

    provider.restart(id_start=500)
    window_id = await provider.open_window()
    first = await provider.open_group(window_id, 'Work', ['https://x.example'])
    second = await provider.open_group(window_id, 'Work', ['https://y.example'])
    document = await reconciler.reconcile_all()

    groups = {g.id: g for g in document.windows[str(window_id)].groups.values()}
    assert sorted(groups) == sorted([first, second])
    for group_id, url in ((first, 'https://x.example'), (second, 'https://y.example')):
        assert [t.url for t in groups[group_id].tabs if not t.closed] == [url]
    closed_urls = {t.url for g in groups.values() for t in g.tabs if t.closed}
    assert closed_urls == {'https://a.example', 'https://b.example'}


@pytest.mark.asyncio
async def test_group_move_leaves_a_single_owner(provider, gateway, reconciler):
    source, group_id = await open_work_window(provider)
    target = await provider.open_window()
    await reconciler.reconcile_all()

    await provider.drag_group(group_id, target)
    await reconciler.sync_group(group_id, None)
    assert domain.find_group_by_id(await gateway.read(), group_id) is None
    await reconciler.sync_group(group_id, target, update_positions=True)

    document = await gateway.read()
    owners = [loc for loc in domain.iter_groups(document) if loc.group_key == str(group_id)]
    assert [loc.window_key for loc in owners] == [str(target)]
    assert owners[0].group.window_id == target
    assert str(group_id) not in document.windows[str(source)].groups
    assert reconciler.parked == {}


@pytest.mark.asyncio
async def test_parked_group_is_reinstated_by_full_reconcile(provider, gateway, reconciler):
    window_id, group_id = await open_work_window(provider)
    await reconciler.reconcile_all()

    # Detach without the attach that normally follows
    await reconciler.sync_group(group_id, None)
    document = await reconciler.reconcile_all()

    group = document.windows[str(window_id)].groups[str(group_id)]
    assert group.id == group_id and not group.closed
    assert reconciler.parked == {}


@pytest.mark.asyncio
async def test_missing_window_gives_up_after_bounded_attempts(provider, store):
    window_id, group_id = await open_work_window(provider)
    reconciler = Reconciler(provider, StorageGateway(store), max_attempts=1)

    await reconciler.sync_group(group_id, window_id)

    assert store.writes == 0


@pytest.mark.asyncio
async def test_group_sync_creates_missing_window_record(provider, gateway, reconciler):
    window_id, group_id = await open_work_window(provider)

    await reconciler.sync_group(group_id, window_id)

    document = await gateway.read()
    assert document.windows[str(window_id)].groups[str(group_id)].title == 'Work'


@pytest.mark.asyncio
async def test_gone_group_sync_is_a_no_op(provider, store, reconciler):
    await reconciler.sync_group(999, 1)

    assert store.writes == 0


@pytest.mark.asyncio
async def test_removed_tab_becomes_history(provider, gateway, reconciler):
    window_id, group_id = await open_work_window(provider)
    await reconciler.reconcile_all()
    tab = (await provider.query_tabs(group_id=group_id, url='https://a.example'))[0]

    await provider.close_tab(tab.id)
    await reconciler.sync_group_of_removed_tab(tab.id, window_id)

    group = (await gateway.read()).windows[str(window_id)].groups[str(group_id)]
    assert [(t.url, t.closed) for t in group.tabs] == [('https://b.example', False), ('https://a.example', True)]


@pytest.mark.asyncio
async def test_close_records_of_removed_objects(provider, gateway, reconciler):
    await gateway.replace(
        StorageDocument(
            windows={
                '1': WindowRecord(
                    id=1,
                    groups={'2': GroupRecord(id=2, window_id=1, tabs=[TabRecord(id=3, url='A')])},
                )
            }
        )
    )

    assert await reconciler.close_group_record(2)
    assert not await reconciler.close_group_record(2)
    assert await reconciler.close_window_record(1)

    document = await gateway.read()
    assert document.windows['1'].closed
    tab = document.windows['1'].groups['2'].tabs[0]
    assert (tab.id, tab.closed, tab.url) == (None, False, 'A')
