"""Mini README: FastAPI surface of the authoritative ledger.

Structure:
    * create_application - application factory wiring the store, the
      broadcaster, the serialising ledger service, REST routes, and the
      ``/ws`` live channel.

Every accepted mutation, from a REST call or a live-channel intent, is
broadcast to all connected clients, the sender included. Summaries and chart
buckets are derived on each read and never stored.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from fastapi import Body, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..configuration import CashflowSettings, get_settings
from ..errors import StorageError, ValidationError
from ..logging_utils import get_logger
from ..storage import LedgerStore, seed_defaults
from ..sync import Broadcaster, LedgerService

LOGGER = get_logger(__name__)

SUCCESS = {"success": True}


class ServicePriceUpdate(BaseModel):
    price: float


class SettingUpdate(BaseModel):
    value: Union[str, int, float]


def create_application(
    settings: Optional[CashflowSettings] = None,
    store: Optional[LedgerStore] = None,
) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = settings or get_settings()
    app = FastAPI(title="Cashflow Ledger", version="0.1.0")

    if store is None:
        store = LedgerStore(settings.resolved_database_url())
    if settings.seed_on_startup:
        seed_defaults(store, settings.default_tax_rate)
    broadcaster = Broadcaster()
    ledger = LedgerService(store, broadcaster)
    app.state.ledger = ledger

    def storage_failure(action: str, error: StorageError) -> HTTPException:
        LOGGER.error("Error %s: %s", action, error)
        return HTTPException(status_code=500, detail=f"Failed {action}")

    @app.get("/api/transactions")
    async def list_transactions() -> JSONResponse:
        """Return the full ledger, most recent date first."""

        try:
            transactions = ledger.list_transactions()
        except StorageError as error:
            raise storage_failure("listing transactions", error) from error
        return JSONResponse([transaction.as_dict() for transaction in transactions])

    @app.get("/api/services")
    async def list_services() -> JSONResponse:
        try:
            services = ledger.list_services()
        except StorageError as error:
            raise storage_failure("listing services", error) from error
        return JSONResponse([service.as_dict() for service in services])

    @app.get("/api/settings")
    async def list_settings() -> JSONResponse:
        try:
            return JSONResponse(ledger.list_settings())
        except StorageError as error:
            raise storage_failure("listing settings", error) from error

    @app.get("/api/summary")
    async def summary() -> JSONResponse:
        """Totals derived from every stored transaction."""

        try:
            return JSONResponse(ledger.summary().as_dict())
        except StorageError as error:
            raise storage_failure("computing summary", error) from error

    @app.get("/api/chart")
    async def chart() -> JSONResponse:
        try:
            buckets: List[Dict[str, object]] = [bucket.as_dict() for bucket in ledger.chart()]
        except StorageError as error:
            raise storage_failure("computing chart", error) from error
        return JSONResponse(buckets)

    @app.post("/api/transactions")
    async def add_transaction(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Persist a client-created transaction and broadcast it."""

        try:
            transaction = await ledger.add_transaction(payload)
        except ValidationError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except StorageError as error:
            raise storage_failure("adding transaction", error) from error
        LOGGER.info("Accepted transaction %s over HTTP", transaction.transaction_id)
        return JSONResponse(SUCCESS)

    @app.delete("/api/transactions/{transaction_id}")
    async def delete_transaction(transaction_id: str) -> JSONResponse:
        try:
            await ledger.delete_transaction(transaction_id)
        except StorageError as error:
            raise storage_failure("deleting transaction", error) from error
        return JSONResponse(SUCCESS)

    @app.put("/api/services/{service_id}")
    async def update_service_price(service_id: str, body: ServicePriceUpdate) -> JSONResponse:
        """Update a listed price; unknown ids are acknowledged without change."""

        try:
            await ledger.update_service_price(service_id, body.price)
        except ValidationError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except StorageError as error:
            raise storage_failure("updating service price", error) from error
        return JSONResponse(SUCCESS)

    @app.put("/api/settings/{key}")
    async def update_setting(key: str, body: SettingUpdate) -> JSONResponse:
        try:
            await ledger.update_setting(key, body.value)
        except ValidationError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except StorageError as error:
            raise storage_failure("updating setting", error) from error
        return JSONResponse(SUCCESS)

    @app.websocket("/ws")
    async def live_channel(websocket: WebSocket) -> None:
        """Receive fire-and-forget intents and deliver broadcast events."""

        connection_id = await broadcaster.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    await ledger.handle_intent(json.loads(raw))
                except ValueError as error:
                    # Covers ValidationError and undecodable JSON.
                    LOGGER.warning("Rejected intent from %s: %s", connection_id, error)
                except StorageError as error:
                    LOGGER.error("Intent from %s not applied: %s", connection_id, error)
        except WebSocketDisconnect:
            LOGGER.debug("Live channel %s closed by client", connection_id)
        finally:
            broadcaster.disconnect(connection_id)

    return app
