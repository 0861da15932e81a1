"""
Probing live objects.

A failed lookup is never an error for the engine: absence means "closed", and
a provider failure degrades to absence after being logged.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TypeVar

from tabbox.exceptions import SessionObjectNotFoundError, SessionProviderError

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def probe(call: Awaitable[T], what: str) -> T | None:
    """
    Await a provider call, mapping failures to ``None``.

    Args:
        call: Pending provider call
        what: Short description for the log line (e.g. 'get_group(12)')

    Returns:
        The call's result, or None if the object is absent or the call failed
    """
    try:
        return await call
    except SessionObjectNotFoundError:
        logger.debug(f'{what}: not found')
        return None
    except SessionProviderError as e:
        logger.warning(f'{what} failed, treating as absent: {e}')
        return None
