"""Tests for matching live groups and windows to stored records."""

from __future__ import annotations

import logging

import pytest

from tabbox import domain
from tabbox.schemas.live import LiveGroup
from tabbox.schemas.records import GroupRecord, StorageDocument, WindowRecord
from tabbox.services.identity import IdentityResolver
from tabbox.session.memory import InMemorySessionProvider


def closed_window(*titles: str, window_id: int = 1) -> WindowRecord:
    return WindowRecord(
        closed=True,
        groups={str(-i - 1): GroupRecord(title=t, closed=True, window_id=window_id) for i, t in enumerate(titles)},
    )


class TestMatchGroup:
    @pytest.mark.asyncio
    async def test_id_match_wins_over_title(self, provider):
        document = StorageDocument(
            windows={
                '1': WindowRecord(
                    id=1,
                    groups={
                        '5': GroupRecord(id=5, title='Old title', window_id=1),
                        '6': GroupRecord(id=None, title='Work', window_id=1),
                    },
                )
            }
        )
        resolver = IdentityResolver(provider)

        location = await resolver.match_group(document, LiveGroup(id=5, window_id=1, title='Work'), 1)

        assert location.group_key == '5'

    @pytest.mark.asyncio
    async def test_title_match_only_in_current_window(self, provider):
        document = StorageDocument(windows={'2': closed_window('Work', window_id=2)})
        resolver = IdentityResolver(provider)

        assert await resolver.match_group(document, LiveGroup(id=9, window_id=1, title='Work'), 1) is None

    @pytest.mark.asyncio
    async def test_empty_title_never_matches(self, provider):
        document = StorageDocument(windows={'1': closed_window('')})
        resolver = IdentityResolver(provider)

        assert await resolver.match_group(document, LiveGroup(id=9, window_id=1, title=''), 1) is None

    @pytest.mark.asyncio
    async def test_ambiguous_title_takes_first_and_warns(self, provider, caplog):
        document = StorageDocument(windows={'1': closed_window('Work', 'Work')})
        resolver = IdentityResolver(provider)

        with caplog.at_level(logging.WARNING):
            location = await resolver.match_group(document, LiveGroup(id=9, window_id=1, title='Work'), 1)

        assert location.group_key == '-1'
        assert 'Rename duplicates' in caplog.text

    @pytest.mark.asyncio
    async def test_parked_record_is_matched_by_id(self, provider):
        document = StorageDocument()
        group = GroupRecord(id=9, title='Work', window_id=1)
        parked = {9: domain.GroupLocation('1', '9', group)}
        resolver = IdentityResolver(provider)

        location = await resolver.match_group(document, LiveGroup(id=9, window_id=4, title='Work'), 4, parked)

        assert location.group is group

    @pytest.mark.asyncio
    async def test_title_match_skips_record_of_another_live_group(self, provider: InMemorySessionProvider):
        window_id = await provider.open_window()
        bound = await provider.open_group(window_id, 'Work', ['https://x.example'])
        other = await provider.open_group(window_id, 'Work', ['https://y.example'])
        document = StorageDocument(
            windows={
                str(window_id): WindowRecord(
                    id=window_id,
                    groups={str(bound): GroupRecord(id=bound, title='Work', window_id=window_id)},
                )
            }
        )
        resolver = IdentityResolver(provider)

        assert await resolver.match_group(document, await provider.get_group(other), window_id) is None


class TestMatchWindow:
    @pytest.mark.asyncio
    async def test_binds_by_shared_group_titles(self, provider: InMemorySessionProvider):
        window_id = await provider.open_window()
        for title in ('Work', 'Docs', 'Extra'):
            await provider.open_group(window_id, title, [f'https://{title.lower()}.example'])
        document = StorageDocument(
            windows={
                '-1': closed_window('Work'),
                '-2': closed_window('Work', 'Docs'),
                '-3': closed_window('News'),
            }
        )

        match = await IdentityResolver(provider).match_window(document, window_id)

        assert match.window_key == '-2'
        assert match.score == 2

    @pytest.mark.asyncio
    async def test_records_bound_to_live_windows_are_skipped(self, provider: InMemorySessionProvider):
        first = await provider.open_window()
        await provider.open_group(first, 'Work', ['https://a.example'])
        second = await provider.open_window()
        await provider.open_group(second, 'Work', ['https://b.example'])
        document = StorageDocument(
            windows={str(first): WindowRecord(id=first, groups={'1': GroupRecord(title='Work', window_id=first)})}
        )

        assert await IdentityResolver(provider).match_window(document, second) is None

    @pytest.mark.asyncio
    async def test_window_without_titled_groups_has_no_match(self, provider: InMemorySessionProvider):
        window_id = await provider.open_window()
        document = StorageDocument(windows={'-1': closed_window('Work')})

        assert await IdentityResolver(provider).match_window(document, window_id) is None
