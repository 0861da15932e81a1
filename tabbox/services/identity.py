"""
Identity resolution between live objects and durable records.

Live ids are not stable across browser restarts, so a live group or window
that no record knows by id is matched heuristically:
- groups by title, only within the group's current window
- windows by how many group titles they share with a stored window

Both heuristics can bind the wrong record when titles repeat. That is a
caveat for the user (rename duplicates), not something resolved here: an
ambiguous match is logged and the first candidate wins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import attrs

from tabbox import domain
from tabbox.domain import GroupLocation
from tabbox.schemas.live import LiveGroup
from tabbox.schemas.records import StorageDocument, WindowRecord
from tabbox.schemas.types import RecordKey, SessionId
from tabbox.session.probe import probe
from tabbox.session.protocol import SessionProvider

__all__ = ['IdentityResolver', 'WindowMatch']

logger = logging.getLogger(__name__)


@attrs.define(frozen=True)
class WindowMatch:
    window_key: RecordKey
    window: WindowRecord
    score: int


class IdentityResolver:
    """Finds the durable record that corresponds to a live group or window."""

    def __init__(self, provider: SessionProvider) -> None:
        self.provider = provider

    async def match_group(
        self,
        document: StorageDocument,
        live_group: LiveGroup,
        window_id: SessionId,
        parked: Mapping[SessionId, GroupLocation] | None = None,
    ) -> GroupLocation | None:
        """
        Resolve the record for a live group.

        A title candidate still bound to another live group belongs to that
        group and is skipped, so same-titled siblings each keep their own record.

        Args:
            document: Current document
            live_group: The live group
            window_id: The window the group is in now
            parked: Records stripped from their window by a detach, by live id

        Returns:
            Location of the matching record, or None for a group never seen
        """
        by_id = domain.find_group_by_id(document, live_group.id)
        if by_id is not None:
            return by_id
        if parked and live_group.id in parked:
            return parked[live_group.id]

        # Title match in the current window only. Matching across windows would
        # also catch groups whose record is in the window they came from, but
        # binds same-named groups of unrelated windows together.
        candidates = [
            loc
            for loc in domain.find_groups_by_title(document, str(window_id), live_group.title)
            if not await self._bound_to_live_group(loc.group.id)
        ]
        if len(candidates) > 1:
            logger.warning(
                f'{len(candidates)} stored groups titled {live_group.title!r} in window {window_id}; '
                f'binding group {live_group.id} to the first one. Rename duplicates to avoid mix-ups.'
            )
        return candidates[0] if candidates else None

    async def _bound_to_live_group(self, group_id: SessionId | None) -> bool:
        if group_id is None:
            return False
        return await probe(self.provider.get_group(group_id), f'get_group({group_id})') is not None

    async def match_window(self, document: StorageDocument, window_id: SessionId) -> WindowMatch | None:
        """
        Find the stored window that best matches a live window by group titles.

        Only records not bound to a currently-live window are candidates. The
        score is the number of the live window's group titles found among the
        record's group titles; ties go to the first record found.

        Returns:
            Best match, or None when no record shares a single title
        """
        live_groups = await probe(self.provider.list_groups(window_id), f'list_groups({window_id})') or []
        live_titles = {g.title for g in live_groups if g.title}
        if not live_titles:
            return None

        live_windows = await probe(self.provider.list_windows(), 'list_windows') or []
        live_ids = {w.id for w in live_windows}

        best: WindowMatch | None = None
        for key, window in document.windows.items():
            if window.id is not None and window.id in live_ids:
                continue
            stored_titles = {g.title for g in window.groups.values() if g.title}
            score = len(live_titles & stored_titles)
            if score > 0 and (best is None or score > best.score):
                best = WindowMatch(key, window, score)

        logger.debug(f'Best stored window for live window {window_id}: {best}')
        return best
