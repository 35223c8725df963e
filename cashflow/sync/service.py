"""Mini README: The single serialization point for ledger mutations.

``LedgerService`` receives the broadcaster as an injected dependency and
runs every mutation, whether it arrived over HTTP or the live channel, as
"store write, then enqueue the event" while holding one ``asyncio.Lock``.
Two mutations therefore never interleave, and events are queued in the
order the store accepted them. Publishing never awaits a socket, so the
lock is never held while a client drains its outbound queue. When the
store raises ``StorageError`` nothing is published and the error
propagates to the caller.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Dict, List, Mapping

from ..errors import ValidationError
from ..finance.computation import (
    ChartBucket,
    Summary,
    compute_chart_buckets,
    compute_summary,
)
from ..finance.models import ServicePriceEntry, Transaction, coerce_float
from ..finance.validation import parse_transaction
from ..logging_utils import get_logger
from ..storage.ledger_store import LedgerStore
from .broadcaster import Broadcaster
from .events import IntentType, SyncEvent

LOGGER = get_logger(__name__)


class LedgerService:
    """Apply mutations to the store and emit the matching sync events."""

    def __init__(self, store: LedgerStore, broadcaster: Broadcaster) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._lock = asyncio.Lock()

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    async def add_transaction(self, payload: Mapping[str, Any]) -> Transaction:
        transaction = parse_transaction(payload)
        async with self._lock:
            self._store.insert_transaction(transaction)
            self._broadcaster.publish(SyncEvent.transaction_added(transaction))
        return transaction

    async def delete_transaction(self, transaction_id: str) -> None:
        """Delete by id; unknown ids are still acknowledged and broadcast."""

        transaction_id = str(transaction_id)
        async with self._lock:
            self._store.delete_transaction(transaction_id)
            self._broadcaster.publish(SyncEvent.transaction_deleted(transaction_id))

    async def update_service_price(self, service_id: str, price: object) -> None:
        if service_id is None or not str(service_id).strip():
            raise ValidationError("Service price updates require an id.")
        value = coerce_float("price", price)
        if value <= 0 or not math.isfinite(value):
            raise ValidationError("Service price must be a positive number.")
        service_id = str(service_id)
        async with self._lock:
            self._store.upsert_service_price(service_id, value)
            self._broadcaster.publish(SyncEvent.service_price_updated(service_id, value))

    async def update_setting(self, key: str, value: object) -> None:
        if not str(key).strip():
            raise ValidationError("Setting key cannot be empty.")
        if value is None:
            raise ValidationError(f"Setting '{key}' requires a value.")
        key, text = str(key), str(value)
        async with self._lock:
            self._store.upsert_setting(key, text)
            self._broadcaster.publish(SyncEvent.setting_updated(key, text))

    async def handle_intent(self, message: Mapping[str, Any]) -> None:
        """Dispatch a fire-and-forget intent received on the live channel."""

        if not isinstance(message, Mapping):
            raise ValidationError("Intent messages must be JSON objects.")
        intent = IntentType.from_str(message.get("intent"))
        payload = message.get("payload")
        if intent is IntentType.ADD_TRANSACTION:
            await self.add_transaction(payload)
        elif intent is IntentType.DELETE_TRANSACTION:
            if isinstance(payload, Mapping):
                payload = payload.get("id")
            if payload is None:
                raise ValidationError("delete-transaction requires an id.")
            await self.delete_transaction(payload)
        else:
            if not isinstance(payload, Mapping):
                raise ValidationError(f"{intent.value} requires an object payload.")
            if intent is IntentType.UPDATE_SERVICE_PRICE:
                await self.update_service_price(payload.get("id"), payload.get("price"))
            else:
                await self.update_setting(payload.get("key", ""), payload.get("value"))

    # Reads never take the lock; they see the last committed row state.

    def list_transactions(self) -> List[Transaction]:
        return self._store.list_transactions()

    def list_services(self) -> List[ServicePriceEntry]:
        return self._store.list_services()

    def list_settings(self) -> Dict[str, str]:
        return self._store.list_settings()

    def summary(self) -> Summary:
        return compute_summary(self._store.list_transactions())

    def chart(self) -> List[ChartBucket]:
        return compute_chart_buckets(self._store.list_transactions())
