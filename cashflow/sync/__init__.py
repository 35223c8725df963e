"""Mini README: Live synchronisation between the ledger and its clients.

Exports the typed events, the broadcaster, the serialising ledger service
used by the server, and the reconciler / client pair used by each mirror.
"""

from .broadcaster import Broadcaster
from .client import SyncClient
from .events import EventType, IntentType, SyncEvent
from .reconciler import ClientReconciler
from .service import LedgerService

__all__ = [
    "Broadcaster",
    "ClientReconciler",
    "EventType",
    "IntentType",
    "LedgerService",
    "SyncClient",
    "SyncEvent",
]
