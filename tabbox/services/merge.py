"""
Tab history merging.

Builds a group's tab list from the live tabs (authoritative, in live order)
followed by the history of tabs that are gone. A URL that is open again
suppresses its history entry, and each URL keeps at most one history entry.
"""

from __future__ import annotations

from collections.abc import Sequence

from tabbox.schemas.live import LiveTab
from tabbox.schemas.records import TabRecord

__all__ = ['merge_tabs', 'tabs_from_live']


def tabs_from_live(live_tabs: Sequence[LiveTab]) -> list[TabRecord]:
    """Open TabRecords for live tabs, in live order."""
    return [TabRecord(id=t.id, closed=False, title=t.display_title, url=t.url) for t in live_tabs]


def merge_tabs(live_tabs: Sequence[LiveTab], prior_tabs: Sequence[TabRecord]) -> list[TabRecord]:
    """
    Merge live tabs with a group's stored tabs.

    Args:
        live_tabs: Tabs currently in the live group, in live order
        prior_tabs: The group record's tabs before this sync

    Returns:
        Open tabs in live order, then the surviving closed tabs in their
        original relative order
    """
    merged = tabs_from_live(live_tabs)
    live_ids = {t.id for t in live_tabs}

    # Anything stored that is not live anymore becomes history
    for prior in prior_tabs:
        if prior.closed or prior.id not in live_ids:
            merged.append(TabRecord(id=None, closed=True, title=prior.title, url=prior.url))

    open_urls = {t.url for t in merged if not t.closed}
    seen_closed: set[str] = set()
    result: list[TabRecord] = []
    for tab in merged:
        if not tab.closed:
            result.append(tab)
        elif tab.url not in open_urls and tab.url not in seen_closed:
            seen_closed.add(tab.url)
            result.append(tab)
    return result
