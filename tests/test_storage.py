"""Tests for the persistent store backends and the storage gateway."""

from __future__ import annotations

import json

import httpx
import pytest

from tabbox.exceptions import StorageError
from tabbox.schemas.records import GroupRecord, StorageDocument, WindowRecord
from tabbox.services.gateway import StorageGateway
from tabbox.storage.gist import GistStore
from tabbox.storage.local import LocalJsonStore
from tabbox.storage.memory import MemoryStore

DOCUMENT = {'windows': {'1': {'id': 1, 'closed': False, 'name': None, 'groups': {}}}}


class TestLocalJsonStore:
    @pytest.mark.asyncio
    async def test_missing_key_reads_as_none(self, tmp_path):
        assert await LocalJsonStore(tmp_path).get('tabbox') is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        store = LocalJsonStore(tmp_path / 'nested')

        await store.set('tabbox', DOCUMENT)

        assert await store.get('tabbox') == DOCUMENT
        assert [p.name for p in (tmp_path / 'nested').iterdir()] == ['tabbox.json']

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        store = LocalJsonStore(tmp_path)
        store.path_for('tabbox').write_text('{not json', encoding='utf-8')

        with pytest.raises(StorageError, match='Cannot read'):
            await store.get('tabbox')

    def test_base_path_must_be_a_directory(self, tmp_path):
        file_path = tmp_path / 'file'
        file_path.write_text('x')

        with pytest.raises(StorageError, match='not a directory'):
            LocalJsonStore(file_path)


class TestGistStore:
    @pytest.mark.asyncio
    async def test_reads_file_from_gist(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == '/gists/abc'
            return httpx.Response(200, json={'files': {'tabbox.json': {'content': json.dumps(DOCUMENT)}}})

        store = GistStore(token='', gist_id='abc', transport=httpx.MockTransport(handler))

        assert await store.get('tabbox') == DOCUMENT

    @pytest.mark.asyncio
    async def test_truncated_file_is_fetched_from_raw_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == 'gist.githubusercontent.com':
                return httpx.Response(200, text=json.dumps(DOCUMENT))
            raw_url = 'https://gist.githubusercontent.com/u/abc/raw/tabbox.json'
            return httpx.Response(200, json={'files': {'tabbox.json': {'truncated': True, 'raw_url': raw_url}}})

        store = GistStore(token='t', gist_id='abc', transport=httpx.MockTransport(handler))

        assert await store.get('tabbox') == DOCUMENT

    @pytest.mark.asyncio
    async def test_missing_gist_or_file_reads_as_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == '/gists/gone':
                return httpx.Response(404)
            return httpx.Response(200, json={'files': {}})

        transport = httpx.MockTransport(handler)

        assert await GistStore(token='t', gist_id='gone', transport=transport).get('tabbox') is None
        assert await GistStore(token='t', gist_id='abc', transport=transport).get('tabbox') is None
        assert await GistStore(token='t', transport=transport).get('tabbox') is None

    @pytest.mark.asyncio
    async def test_first_write_creates_the_gist_then_updates_it(self):
        requests: list[tuple[str, str, dict]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append((request.method, request.url.path, json.loads(request.content)))
            assert request.headers['Authorization'] == 'Bearer t'
            return httpx.Response(201 if request.method == 'POST' else 200, json={'id': 'new-gist'})

        store = GistStore(token='t', transport=httpx.MockTransport(handler))

        await store.set('tabbox', DOCUMENT)
        await store.set('tabbox', DOCUMENT)

        assert [(method, path) for method, path, _ in requests] == [('POST', '/gists'), ('PATCH', '/gists/new-gist')]
        assert requests[0][2]['public'] is False
        assert json.loads(requests[1][2]['files']['tabbox.json']['content']) == DOCUMENT

    @pytest.mark.asyncio
    async def test_write_needs_a_token(self):
        with pytest.raises(StorageError, match='token'):
            await GistStore(token='', gist_id='abc').set('tabbox', DOCUMENT)

    @pytest.mark.asyncio
    async def test_http_errors_become_storage_errors(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        with pytest.raises(StorageError):
            await GistStore(token='t', gist_id='abc', transport=transport).get('tabbox')
        with pytest.raises(StorageError):
            await GistStore(token='t', gist_id='abc', transport=transport).set('tabbox', DOCUMENT)


class TestStorageGateway:
    @pytest.mark.asyncio
    async def test_empty_store_reads_as_empty_document(self):
        assert await StorageGateway(MemoryStore()).read() == StorageDocument()

    @pytest.mark.asyncio
    async def test_replace_persists_and_notifies(self):
        store = MemoryStore()
        gateway = StorageGateway(store, key='custom')
        seen: list[StorageDocument] = []

        async def on_change(document: StorageDocument) -> None:
            seen.append(document)

        gateway.subscribe(on_change)
        document = StorageDocument(
            windows={'1': WindowRecord(id=1, groups={'2': GroupRecord(id=2, title='Work', window_id=1)})}
        )
        await gateway.replace(document)

        assert list(store.data) == ['custom']
        assert store.data['custom']['windows']['1']['groups']['2']['title'] == 'Work'
        assert seen == [document]
        assert (await gateway.read()).windows['1'].groups['2'].title == 'Work'

    @pytest.mark.asyncio
    async def test_invalid_document_raises(self):
        store = MemoryStore()
        await store.set('tabbox', {'windows': {'1': {'unexpected': True}}})

        with pytest.raises(StorageError, match='invalid'):
            await StorageGateway(store).read()
