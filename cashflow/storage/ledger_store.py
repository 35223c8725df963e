"""Mini README: Authoritative ledger storage backed by SQLAlchemy Core.

Structure:
    * METADATA / table definitions - transactions, services, settings.
    * create_ledger_engine - engine factory tuned for SQLite URLs.
    * LedgerStore - keyed insert/update/delete/select over the three tables.

Every public operation runs inside its own ``engine.begin()`` block, so a
single-row mutation either fully lands or not at all. Any SQLAlchemy fault
is logged and re-raised as ``StorageError``. The store never broadcasts;
``cashflow.sync.service.LedgerService`` pairs each accepted write with the
matching sync event.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import (
    Column,
    Date,
    Float,
    MetaData,
    String,
    Table,
    create_engine,
    literal_column,
    select,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..errors import StorageError
from ..finance.models import ServicePriceEntry, Transaction
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

METADATA = MetaData()

transactions_table = Table(
    "transactions",
    METADATA,
    Column("id", String, primary_key=True),
    Column("kind", String, nullable=False),
    Column("description", String, nullable=False),
    Column("category", String, nullable=False),
    Column("gross_amount", Float, nullable=False),
    Column("occurred_on", Date, nullable=False),
    Column("payment_method", String),
    Column("tax_rate", Float),
    Column("card_surcharge_rate", Float),
    Column("payout_kind", String),
    Column("payout_value", Float),
    Column("net_amount", Float),
)

services_table = Table(
    "services",
    METADATA,
    Column("id", String, primary_key=True),
    Column("category", String, nullable=False),
    Column("name", String, nullable=False),
    Column("default_price", Float, nullable=False),
)

settings_table = Table(
    "settings",
    METADATA,
    Column("key", String, primary_key=True),
    Column("value", String, nullable=False),
)


def create_ledger_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    if database_url in {"sqlite://", "sqlite:///:memory:"}:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url)


def _transaction_row(transaction: Transaction) -> Dict[str, object]:
    payout = transaction.payout_policy
    return {
        "id": transaction.transaction_id,
        "kind": transaction.kind.value,
        "description": transaction.description,
        "category": transaction.category,
        "gross_amount": transaction.gross_amount,
        "occurred_on": transaction.occurred_on,
        "payment_method": transaction.payment_method.value if transaction.payment_method else None,
        "tax_rate": transaction.tax_rate,
        "card_surcharge_rate": transaction.card_surcharge_rate,
        "payout_kind": payout.kind.value if payout else None,
        "payout_value": payout.value if payout else None,
        "net_amount": transaction.net_amount,
    }


def _row_to_transaction(row: Dict[str, object]) -> Transaction:
    payload = dict(row)
    payout_kind = payload.pop("payout_kind", None)
    payout_value = payload.pop("payout_value", None)
    if payout_kind is not None:
        payload["payout_policy"] = {"kind": payout_kind, "value": payout_value or 0.0}
    return Transaction.from_dict(payload)


class LedgerStore:
    """Keyed access to transactions, the service price list, and settings."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        *,
        engine: Optional[Engine] = None,
    ) -> None:
        if engine is None:
            engine = create_ledger_engine(database_url or "sqlite://")
        self._engine = engine
        with self._guard("create schema"):
            METADATA.create_all(self._engine)
        LOGGER.debug("Ledger store ready on %s", self._engine.url)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate storage faults into ``StorageError``."""

        try:
            yield
        except SQLAlchemyError as error:
            LOGGER.error("Storage failure during %s: %s", operation, error)
            raise StorageError(f"Storage failure during {operation}") from error

    def insert_transaction(self, transaction: Transaction) -> None:
        """Insert or replace the row holding ``transaction.transaction_id``.

        A replaced row is deleted and re-inserted in one database transaction,
        so it takes a fresh ``rowid`` and sorts as the newest arrival among
        entries sharing its date.
        """

        row = _transaction_row(transaction)
        with self._guard("insert transaction"), self._engine.begin() as connection:
            connection.execute(
                transactions_table.delete().where(transactions_table.c.id == row["id"])
            )
            connection.execute(transactions_table.insert().values(**row))
        LOGGER.info("Stored transaction %s", transaction.transaction_id)

    def delete_transaction(self, transaction_id: str) -> bool:
        """Delete a transaction; returns ``False`` when the id was unknown."""

        statement = transactions_table.delete().where(transactions_table.c.id == transaction_id)
        with self._guard("delete transaction"), self._engine.begin() as connection:
            deleted = connection.execute(statement).rowcount > 0
        LOGGER.info("Deleted transaction %s (existed=%s)", transaction_id, deleted)
        return deleted

    def list_transactions(self) -> List[Transaction]:
        """Return transactions by date descending, newest insert first on ties."""

        statement = select(transactions_table).order_by(
            transactions_table.c.occurred_on.desc(),
            literal_column("rowid").desc(),
        )
        with self._guard("list transactions"), self._engine.connect() as connection:
            rows = connection.execute(statement).mappings().all()
        return [_row_to_transaction(row) for row in rows]

    def upsert_service_price(self, service_id: str, price: float) -> bool:
        """Update an existing service price; unknown ids are left untouched."""

        statement = (
            update(services_table)
            .where(services_table.c.id == service_id)
            .values(default_price=price)
        )
        with self._guard("update service price"), self._engine.begin() as connection:
            updated = connection.execute(statement).rowcount > 0
        if not updated:
            LOGGER.debug("Ignoring price update for unknown service %s", service_id)
        return updated

    def upsert_setting(self, key: str, value: str) -> None:
        statement = sqlite_insert(settings_table).values(key=key, value=value)
        statement = statement.on_conflict_do_update(
            index_elements=[settings_table.c.key],
            set_={"value": statement.excluded.value},
        )
        with self._guard("upsert setting"), self._engine.begin() as connection:
            connection.execute(statement)
        LOGGER.info("Setting %s updated", key)

    def list_services(self) -> List[ServicePriceEntry]:
        statement = select(services_table).order_by(services_table.c.category, services_table.c.id)
        with self._guard("list services"), self._engine.connect() as connection:
            rows = connection.execute(statement).mappings().all()
        return [ServicePriceEntry.from_dict(row) for row in rows]

    def list_settings(self) -> Dict[str, str]:
        with self._guard("list settings"), self._engine.connect() as connection:
            rows = connection.execute(select(settings_table)).all()
        return {key: value for key, value in rows}

    # Bootstrap helpers. The sync protocol never creates services or settings.

    def insert_default_services(self, entries: Iterable[ServicePriceEntry]) -> int:
        """Insert services whose id is absent; returns how many were created."""

        rows = [entry.as_dict() for entry in entries]
        if not rows:
            return 0
        statement = sqlite_insert(services_table).on_conflict_do_nothing(
            index_elements=[services_table.c.id]
        )
        with self._guard("seed services"), self._engine.begin() as connection:
            created = connection.execute(statement, rows).rowcount
        return max(created, 0)

    def insert_setting_if_absent(self, key: str, value: str) -> bool:
        statement = (
            sqlite_insert(settings_table)
            .values(key=key, value=value)
            .on_conflict_do_nothing(index_elements=[settings_table.c.key])
        )
        with self._guard("seed setting"), self._engine.begin() as connection:
            inserted = connection.execute(statement).rowcount > 0
        return inserted
