"""Live session providers."""

from tabbox.session.memory import InMemorySessionProvider
from tabbox.session.probe import probe
from tabbox.session.protocol import SessionProvider

__all__ = ['InMemorySessionProvider', 'SessionProvider', 'probe']
