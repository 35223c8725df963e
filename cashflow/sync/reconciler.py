"""Mini README: Per-client mirror of the authoritative ledger.

Structure:
    * ClientReconciler - holds the client's ordered transactions, service
      prices, and settings, and merges two kinds of writes into them:
        - optimistic local mutations applied before the server confirms;
        - broadcast events, merged idempotently.

Entries added locally stay in ``tentative_ids`` until the matching
``transaction-added`` event arrives. A failed server request does not roll
the mirror back: the entry is kept, the divergence is logged, and the next
full ``load_snapshot`` (performed on every reconnect) realigns the mirror.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Set

from ..errors import ValidationError
from ..finance.computation import (
    ChartBucket,
    Summary,
    compute_chart_buckets,
    compute_summary,
)
from ..finance.models import ServicePriceEntry, Transaction, coerce_float
from ..logging_utils import get_logger
from .events import EventType, SyncEvent

LOGGER = get_logger(__name__)


class ClientReconciler:
    """Local, eventually consistent copy of the ledger for one client."""

    def __init__(self, name: str = "client") -> None:
        self.name = name
        self._transactions: List[Transaction] = []
        self._services: Dict[str, ServicePriceEntry] = {}
        self._settings: Dict[str, str] = {}
        self._tentative: Set[str] = set()

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._transactions)

    @property
    def services(self) -> Dict[str, ServicePriceEntry]:
        return dict(self._services)

    @property
    def settings(self) -> Dict[str, str]:
        return dict(self._settings)

    @property
    def tentative_ids(self) -> Set[str]:
        return set(self._tentative)

    def __contains__(self, transaction_id: object) -> bool:
        return any(tx.transaction_id == transaction_id for tx in self._transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def resort(self) -> None:
        """Order by date descending; equal dates keep their current order."""

        self._transactions.sort(key=lambda tx: tx.occurred_on, reverse=True)

    def load_snapshot(
        self,
        transactions: Iterable[Transaction],
        services: Iterable[ServicePriceEntry],
        settings: Mapping[str, str],
    ) -> None:
        """Replace the whole mirror with a freshly fetched server snapshot."""

        self._transactions = list(transactions)
        self.resort()
        self._services = {service.service_id: service for service in services}
        self._settings = {str(key): str(value) for key, value in settings.items()}
        self._tentative.clear()
        LOGGER.info(
            "%s resynchronised: %s transactions, %s services",
            self.name,
            len(self._transactions),
            len(self._services),
        )

    # Optimistic local mutations.

    def add_local(self, transaction: Transaction) -> None:
        self._transactions = [
            tx for tx in self._transactions if tx.transaction_id != transaction.transaction_id
        ]
        self._transactions.insert(0, transaction)
        self.resort()
        self._tentative.add(transaction.transaction_id)

    def delete_local(self, transaction_id: str) -> None:
        self._remove(transaction_id)

    def update_service_price_local(self, service_id: str, price: float) -> None:
        self._set_price(service_id, price)

    def update_setting_local(self, key: str, value: str) -> None:
        self._settings[key] = value

    def mark_failed(self, transaction_id: Optional[str], reason: object = None) -> None:
        """Record that a server request behind an optimistic write failed."""

        LOGGER.warning(
            "%s diverges from the server until the next resync (entry %s): %s",
            self.name,
            transaction_id,
            reason,
        )

    # Broadcast merge.

    def apply_event(self, event: SyncEvent) -> bool:
        """Merge one broadcast event; returns ``True`` when the mirror changed."""

        payload = event.payload
        if event.event_type is EventType.TRANSACTION_ADDED:
            transaction = Transaction.from_dict(payload)
            if transaction.transaction_id in self:
                self._tentative.discard(transaction.transaction_id)
                LOGGER.debug("%s already holds %s", self.name, transaction.transaction_id)
                return False
            self._transactions.insert(0, transaction)
            self.resort()
            return True
        if event.event_type is EventType.TRANSACTION_DELETED:
            return self._remove(str(payload))
        if not isinstance(payload, Mapping):
            raise ValidationError(f"{event.event_type.value} requires an object payload.")
        if event.event_type is EventType.SERVICE_PRICE_UPDATED:
            return self._set_price(
                str(payload.get("id")), coerce_float("price", payload.get("price"))
            )
        self._settings[str(payload.get("key"))] = str(payload.get("value"))
        return True

    def _remove(self, transaction_id: str) -> bool:
        remaining = [tx for tx in self._transactions if tx.transaction_id != transaction_id]
        removed = len(remaining) != len(self._transactions)
        self._transactions = remaining
        self._tentative.discard(transaction_id)
        return removed

    def _set_price(self, service_id: str, price: float) -> bool:
        service = self._services.get(service_id)
        if service is None:
            return False
        self._services[service_id] = ServicePriceEntry(
            service_id=service.service_id,
            category=service.category,
            name=service.name,
            default_price=price,
        )
        return True

    # Derived views.

    def summary(self) -> Summary:
        return compute_summary(self._transactions)

    def chart(self) -> List[ChartBucket]:
        return compute_chart_buckets(self._transactions)

    def tax_rate(self, key: str = "tax_rate") -> float:
        """Current default tax rate from the mirrored settings (0 if unset)."""

        try:
            return float(self._settings.get(key, 0) or 0)
        except ValueError:
            LOGGER.warning("%s holds a non-numeric %s setting", self.name, key)
            return 0.0
