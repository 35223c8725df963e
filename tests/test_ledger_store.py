"""Mini README: Tests for the SQLAlchemy-backed ledger store and seeding.

Structure:
    * test_insert_with_existing_id_replaces_row - upsert by id.
    * test_round_trip_keeps_stored_net_amount - stored derived fields survive reads.
    * test_delete_unknown_id_is_a_noop - idempotent deletes.
    * test_list_orders_by_date_descending - date order with arrival tie-break.
    * test_price_update_for_unknown_service_changes_nothing - no implicit services.
    * test_price_update_for_known_service - price edits land.
    * test_settings_last_write_wins - settings overwrite.
    * test_seeding_is_idempotent_and_preserves_edits - re-seeding keeps edits.
    * test_storage_fault_surfaces_as_storage_error - faults become ``StorageError``.
    * test_replaced_row_sorts_as_newest_on_its_date - a replaced id counts as a new arrival.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from cashflow.errors import StorageError
from cashflow.finance import parse_transaction
from cashflow.storage import DEFAULT_SERVICES, TAX_RATE_SETTING, LedgerStore, seed_defaults


def test_insert_with_existing_id_replaces_row(store: LedgerStore, income_payload) -> None:
    """Inserting an existing id replaces the stored row."""

    store.insert_transaction(parse_transaction(income_payload(gross_amount=200)))
    store.insert_transaction(parse_transaction(income_payload(gross_amount=300)))

    transactions = store.list_transactions()
    assert len(transactions) == 1
    assert transactions[0].gross_amount == pytest.approx(300.0)


def test_round_trip_keeps_stored_net_amount(store: LedgerStore, income_payload) -> None:
    """Stored derived fields come back unchanged."""

    store.insert_transaction(parse_transaction(income_payload()))

    stored = store.list_transactions()[0]
    assert stored.net_amount == pytest.approx(39.7)
    assert stored.payout_policy is not None
    assert stored.payout_policy.value == pytest.approx(70.0)
    assert stored.payment_method.value == "credit"


def test_delete_unknown_id_is_a_noop(store: LedgerStore, income_payload) -> None:
    """Deleting an unknown id reports False and keeps other rows."""

    store.insert_transaction(parse_transaction(income_payload()))

    assert store.delete_transaction("missing") is False
    assert len(store.list_transactions()) == 1
    assert store.delete_transaction("tx-income") is True
    assert store.list_transactions() == []


def test_list_orders_by_date_descending(store: LedgerStore, income_payload) -> None:
    """Listing is newest date first, latest insert first on ties."""

    store.insert_transaction(parse_transaction(income_payload(id="old", occurred_on="2024-01-05")))
    store.insert_transaction(parse_transaction(income_payload(id="new", occurred_on="2024-03-01")))
    store.insert_transaction(parse_transaction(income_payload(id="mid", occurred_on="2024-02-01")))
    store.insert_transaction(parse_transaction(income_payload(id="mid-2", occurred_on="2024-02-01")))

    ids = [transaction.transaction_id for transaction in store.list_transactions()]
    assert ids == ["new", "mid-2", "mid", "old"]


def test_price_update_for_unknown_service_changes_nothing(store: LedgerStore) -> None:
    """Price updates never create services."""

    seed_defaults(store)
    before = [service.as_dict() for service in store.list_services()]

    assert store.upsert_service_price("does-not-exist", 999.0) is False
    assert [service.as_dict() for service in store.list_services()] == before


def test_price_update_for_known_service(store: LedgerStore) -> None:
    """A listed service takes the new price."""

    seed_defaults(store)

    assert store.upsert_service_price("res-8h", 220.0) is True
    prices = {service.service_id: service.default_price for service in store.list_services()}
    assert prices["res-8h"] == pytest.approx(220.0)


def test_settings_last_write_wins(store: LedgerStore) -> None:
    """The latest value of a setting wins."""

    store.upsert_setting(TAX_RATE_SETTING, "6")
    store.upsert_setting(TAX_RATE_SETTING, "8")

    assert store.list_settings() == {TAX_RATE_SETTING: "8"}


def test_seeding_is_idempotent_and_preserves_edits(store: LedgerStore) -> None:
    """Re-seeding keeps edited prices and settings."""

    seed_defaults(store, "6")
    store.upsert_service_price("pos-obra", 650.0)
    store.upsert_setting(TAX_RATE_SETTING, "7.5")

    seed_defaults(store, "6")

    services = store.list_services()
    assert len(services) == len(DEFAULT_SERVICES)
    assert {s.service_id: s.default_price for s in services}["pos-obra"] == pytest.approx(650.0)
    assert store.list_settings()[TAX_RATE_SETTING] == "7.5"


def test_storage_fault_surfaces_as_storage_error(store: LedgerStore, income_payload) -> None:
    """Database faults surface as StorageError."""

    with store.engine.begin() as connection:
        connection.execute(text("DROP TABLE transactions"))

    with pytest.raises(StorageError):
        store.insert_transaction(parse_transaction(income_payload()))
    with pytest.raises(StorageError):
        store.list_transactions()


def test_replaced_row_sorts_as_newest_on_its_date(store: LedgerStore, income_payload) -> None:
    """Re-inserting an id moves it ahead of older arrivals sharing its date."""

    store.insert_transaction(parse_transaction(income_payload(id="a")))
    store.insert_transaction(parse_transaction(income_payload(id="b")))
    store.insert_transaction(parse_transaction(income_payload(id="a", gross_amount=250)))

    transactions = store.list_transactions()
    assert [transaction.transaction_id for transaction in transactions] == ["a", "b"]
    assert transactions[0].gross_amount == pytest.approx(250.0)
