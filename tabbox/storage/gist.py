"""
GitHub Gist store.

Keeps the document as ``<key>.json`` inside one (secret by default) gist. The
gist is created on the first write when no gist id is configured.
"""

from __future__ import annotations

import json
from typing import Any, Literal

import httpx

from tabbox.exceptions import StorageError


class GistStore:
    """
    GitHub Gist storage backend.

    Gists are text-only and capped at 100MB per file; a StorageDocument is far
    below that, so no size handling is needed beyond surfacing API errors.
    """

    def __init__(
        self,
        token: str,
        gist_id: str | None = None,
        visibility: Literal['public', 'secret'] = 'secret',
        description: str = 'tabbox session records',
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Gist storage backend.

        Args:
            token: GitHub Personal Access Token with 'gist' scope (empty string allowed for read-only)
            gist_id: Optional existing gist ID (if None, creates new gist on first write)
            visibility: 'public' or 'secret' (default: secret)
            description: Gist description
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.token = token
        self.gist_id = gist_id
        self.visibility = visibility
        self.description = description
        self.base_url = 'https://api.github.com'
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github.v3+json',
            'X-GitHub-Api-Version': '2022-11-28',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, headers=self._headers(), transport=self._transport)

    async def get(self, key: str) -> dict[str, Any] | None:
        """
        Load the document from the gist.

        Returns:
            The document, or None if there is no gist yet or it lacks the file

        Raises:
            StorageError: If the GitHub API call fails or the file is not JSON
        """
        if not self.gist_id:
            return None

        filename = f'{key}.json'
        try:
            async with self._client() as client:
                response = await client.get(f'/gists/{self.gist_id}')
                if response.status_code == 404:
                    return None
                response.raise_for_status()

                files = response.json().get('files', {})
                if filename not in files:
                    return None

                # Truncated or missing content - fetch full content from raw_url
                file_data = files[filename]
                if file_data.get('truncated', False) or 'content' not in file_data:
                    raw_response = await client.get(file_data['raw_url'])
                    raw_response.raise_for_status()
                    content = raw_response.text
                else:
                    content = file_data['content']
        except httpx.HTTPError as e:
            raise StorageError(f'Cannot load gist {self.gist_id}: {e}') from e

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageError(f"File '{filename}' in gist {self.gist_id} is not valid JSON") from e

    async def set(self, key: str, value: dict[str, Any]) -> None:
        """
        Write the document to the gist, creating the gist if needed.

        Raises:
            StorageError: If the token is missing or the GitHub API call fails
        """
        if not self.token:
            raise StorageError('GitHub token is required to write to a gist')

        files = {f'{key}.json': {'content': json.dumps(value, indent=2, ensure_ascii=False)}}
        try:
            async with self._client() as client:
                if self.gist_id:
                    response = await client.patch(f'/gists/{self.gist_id}', json={'files': files})
                    response.raise_for_status()
                else:
                    response = await client.post(
                        '/gists',
                        json={
                            'description': self.description,
                            'public': self.visibility == 'public',
                            'files': files,
                        },
                    )
                    response.raise_for_status()
                    self.gist_id = response.json()['id']  # Store for future updates
        except httpx.HTTPError as e:
            raise StorageError(f'Cannot write gist: {e}') from e
