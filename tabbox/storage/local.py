"""
Local filesystem store.

One ``<key>.json`` file per key. Writes go to a temporary file in the same
directory which then replaces the target, so a reader never sees a half
written document.
"""

from __future__ import annotations

import json
import os
import pathlib
import tempfile
from typing import Any

from tabbox.exceptions import StorageError


class LocalJsonStore:
    """Local filesystem storage backend."""

    def __init__(self, base_path: pathlib.Path) -> None:
        """
        Initialize local filesystem storage.

        Args:
            base_path: Directory holding the document files (created if missing)

        Raises:
            StorageError: If base_path exists but is not a directory
        """
        if base_path.exists() and not base_path.is_dir():
            raise StorageError(f'Storage path is not a directory: {base_path}')
        base_path.mkdir(parents=True, exist_ok=True)
        self.base_path = base_path

    def path_for(self, key: str) -> pathlib.Path:
        return self.base_path / f'{key}.json'

    async def get(self, key: str) -> dict[str, Any] | None:
        file_path = self.path_for(key)
        if not file_path.exists():
            return None
        try:
            data = json.loads(file_path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f'Cannot read {file_path}: {e}') from e
        if not isinstance(data, dict):
            raise StorageError(f'{file_path} does not hold a JSON object')
        return data

    async def set(self, key: str, value: dict[str, Any]) -> None:
        file_path = self.path_for(key)
        fd, temp_name = tempfile.mkstemp(prefix=f'.{key}-', suffix='.json', dir=self.base_path)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(temp_name, file_path)
        except OSError as e:
            pathlib.Path(temp_name).unlink(missing_ok=True)
            raise StorageError(f'Cannot write {file_path}: {e}') from e
