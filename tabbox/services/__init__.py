"""Engine services: storage gateway, reconciliation, resurrection, record edits and the FIFO queue."""

from tabbox.services.gateway import StorageGateway
from tabbox.services.identity import IdentityResolver, WindowMatch
from tabbox.services.merge import merge_tabs, tabs_from_live
from tabbox.services.reconcile import Reconciler
from tabbox.services.records import RecordCommands
from tabbox.services.resurrect import ResurrectedGroup, ResurrectedWindow, ResurrectionEngine
from tabbox.services.serializer import EventSerializer

__all__ = [
    'EventSerializer',
    'IdentityResolver',
    'Reconciler',
    'RecordCommands',
    'ResurrectedGroup',
    'ResurrectedWindow',
    'ResurrectionEngine',
    'StorageGateway',
    'WindowMatch',
    'merge_tabs',
    'tabs_from_live',
]
