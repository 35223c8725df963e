"""Mini README: Client-side driver that keeps a reconciler in sync.

Structure:
    * SyncClient - wraps ``httpx.AsyncClient`` for the request/response API
      and a ``websockets`` connection for inbound broadcast events.

Mutations are optimistic: the reconciler is updated first, then the request
is sent. A failed request is logged through ``ClientReconciler.mark_failed``
and the local change is kept. ``listen`` performs a full resync every time
the live connection is (re)established, which is the only way a client
recovers events it missed while disconnected.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
import websockets
from websockets.exceptions import WebSocketException

from ..errors import CashflowError, ValidationError
from ..finance.computation import build_service_income
from ..finance.models import (
    PaymentMethod,
    PayoutPolicy,
    ServicePriceEntry,
    Transaction,
)
from ..finance.validation import parse_transaction
from ..logging_utils import get_logger
from .events import SyncEvent
from .reconciler import ClientReconciler

LOGGER = get_logger(__name__)


class SyncClient:
    """Optimistic REST client plus live event listener for one mirror."""

    def __init__(
        self,
        base_url: str,
        *,
        reconciler: Optional[ClientReconciler] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
        ws_connect: Callable[[str], Any] = websockets.connect,
    ) -> None:
        self.reconciler = reconciler or ClientReconciler()
        self._ws_connect = ws_connect
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "SyncClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str) -> Any:
        response = await self._client.get(path, headers={"Cache-Control": "no-cache"})
        response.raise_for_status()
        return response.json()

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        try:
            response = await self._client.request(method, path, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as error:
            LOGGER.error("%s %s failed: %s", method, path, error)
            return False
        return True

    async def resync(self) -> None:
        """Fetch transactions, services, and settings and replace the mirror."""

        transactions = await self._get_json("/api/transactions")
        services = await self._get_json("/api/services")
        settings = await self._get_json("/api/settings")
        self.reconciler.load_snapshot(
            [Transaction.from_dict(item) for item in transactions],
            [ServicePriceEntry.from_dict(item) for item in services],
            settings,
        )

    async def add_transaction(self, payload: Mapping[str, Any]) -> Transaction:
        """Create an entry locally, then submit it; invalid payloads never land."""

        payload = dict(payload)
        payload.setdefault("id", str(uuid.uuid4()))
        transaction = parse_transaction(payload)
        self.reconciler.add_local(transaction)
        if not await self._send("POST", "/api/transactions", transaction.as_dict()):
            self.reconciler.mark_failed(transaction.transaction_id, "add request failed")
        return transaction

    async def launch_service(
        self,
        service_id: str,
        *,
        client_name: str,
        occurred_on: date,
        times_per_month: int = 1,
        payment_method: PaymentMethod = PaymentMethod.PIX,
        payout_policy: Optional[PayoutPolicy] = None,
        tax_rate: Optional[float] = None,
    ) -> Transaction:
        """Record income for a listed service using the mirrored price and tax rate."""

        service = self.reconciler.services.get(service_id)
        if service is None:
            raise ValidationError(f"Unknown service {service_id}")
        transaction = build_service_income(
            service,
            client_name=client_name,
            occurred_on=occurred_on,
            times_per_month=times_per_month,
            payment_method=payment_method,
            tax_rate=self.reconciler.tax_rate() if tax_rate is None else tax_rate,
            payout_policy=payout_policy,
        )
        return await self.add_transaction(transaction.as_dict())

    async def delete_transaction(self, transaction_id: str) -> None:
        self.reconciler.delete_local(transaction_id)
        if not await self._send("DELETE", f"/api/transactions/{transaction_id}"):
            self.reconciler.mark_failed(transaction_id, "delete request failed")

    async def update_service_price(self, service_id: str, price: float) -> None:
        self.reconciler.update_service_price_local(service_id, price)
        if not await self._send("PUT", f"/api/services/{service_id}", {"price": price}):
            self.reconciler.mark_failed(None, f"price update for {service_id} failed")

    async def update_setting(self, key: str, value: str) -> None:
        self.reconciler.update_setting_local(key, value)
        if not await self._send("PUT", f"/api/settings/{key}", {"value": value}):
            self.reconciler.mark_failed(None, f"setting update for {key} failed")

    def merge_message(self, raw: str | bytes) -> bool:
        """Merge one raw live-channel message into the mirror."""

        try:
            event = SyncEvent.from_message(json.loads(raw))
            return self.reconciler.apply_event(event)
        except (ValueError, TypeError) as error:
            LOGGER.warning("Ignoring malformed sync message: %s", error)
            return False

    async def listen(
        self,
        ws_url: str,
        *,
        reconnect_delay: float = 2.0,
        max_attempts: Optional[int] = None,
    ) -> None:
        """Merge live events, resyncing after every (re)connect.

        Runs until cancelled, or until ``max_attempts`` connections have been
        made. A failed connection or resync is logged and retried after
        ``reconnect_delay`` seconds.
        """

        attempts = 0
        while max_attempts is None or attempts < max_attempts:
            attempts += 1
            try:
                async with self._ws_connect(ws_url) as websocket:
                    await self.resync()
                    async for raw in websocket:
                        self.merge_message(raw)
            except (WebSocketException, OSError, httpx.HTTPError) as error:
                LOGGER.warning("Live channel lost (%s); retrying in %.1fs", error, reconnect_delay)
            except (ValueError, KeyError, TypeError, CashflowError) as error:
                # Undecodable or invalid snapshot from the server.
                LOGGER.error("Resync failed (%s); retrying in %.1fs", error, reconnect_delay)
            if max_attempts is None or attempts < max_attempts:
                await asyncio.sleep(reconnect_delay)
