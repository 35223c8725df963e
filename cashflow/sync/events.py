"""Mini README: Typed sync events and live-channel intents.

Structure:
    * EventType - the four broadcast events emitted after accepted mutations.
    * SyncEvent - one event plus its payload, with wire encode/decode helpers.
    * IntentType - the mutation intents a client may send over the channel.

Wire format of an event: ``{"event": "<type>", "payload": ...}``. Wire format
of an intent: ``{"intent": "<type>", "payload": ...}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from ..errors import ValidationError
from ..finance.models import Transaction


class EventType(str, Enum):
    TRANSACTION_ADDED = "transaction-added"
    TRANSACTION_DELETED = "transaction-deleted"
    SERVICE_PRICE_UPDATED = "service-price-updated"
    SETTING_UPDATED = "setting-updated"


class IntentType(str, Enum):
    ADD_TRANSACTION = "add-transaction"
    DELETE_TRANSACTION = "delete-transaction"
    UPDATE_SERVICE_PRICE = "update-service-price"
    UPDATE_SETTING = "update-setting"

    @classmethod
    def from_str(cls, value: object) -> "IntentType":
        try:
            return cls(str(value))
        except ValueError as error:
            raise ValidationError(f"Unsupported intent: {value}") from error


@dataclass(frozen=True)
class SyncEvent:
    """An already-committed mutation, described for every connected client."""

    event_type: EventType
    payload: Any

    @classmethod
    def transaction_added(cls, transaction: Transaction) -> "SyncEvent":
        return cls(EventType.TRANSACTION_ADDED, transaction.as_dict())

    @classmethod
    def transaction_deleted(cls, transaction_id: str) -> "SyncEvent":
        return cls(EventType.TRANSACTION_DELETED, transaction_id)

    @classmethod
    def service_price_updated(cls, service_id: str, price: float) -> "SyncEvent":
        return cls(EventType.SERVICE_PRICE_UPDATED, {"id": service_id, "price": price})

    @classmethod
    def setting_updated(cls, key: str, value: str) -> "SyncEvent":
        return cls(EventType.SETTING_UPDATED, {"key": key, "value": value})

    def as_message(self) -> Dict[str, Any]:
        return {"event": self.event_type.value, "payload": self.payload}

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "SyncEvent":
        """Decode a wire message received from the live channel."""

        try:
            event_type = EventType(message["event"])
        except (KeyError, TypeError, ValueError) as error:
            raise ValidationError(f"Unrecognised sync message: {message!r}") from error
        return cls(event_type, message.get("payload"))
