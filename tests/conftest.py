"""Mini README: Shared fixtures for the cashflow test suite.

Each test gets a fresh in-memory ledger store and, where needed, an
application wired to it so no state leaks between tests.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict

import pytest

from cashflow.configuration import CashflowSettings
from cashflow.interface import create_application
from cashflow.storage import LedgerStore


@pytest.fixture
def settings(tmp_path) -> CashflowSettings:
    return CashflowSettings(data_directory=tmp_path, database_url="sqlite://")


@pytest.fixture
def store() -> LedgerStore:
    return LedgerStore("sqlite://")


@pytest.fixture
def app(settings: CashflowSettings, store: LedgerStore):
    return create_application(settings=settings, store=store)


@pytest.fixture
def income_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for the income entry used across scenarios."""

    def build(**overrides: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": "tx-income",
            "kind": "income",
            "description": "Serviço de 8h - Ana",
            "category": "Limpeza Residencial",
            "gross_amount": 200.0,
            "occurred_on": date(2024, 6, 10).isoformat(),
            "payment_method": "credit",
            "tax_rate": 6,
            "payout_policy": {"kind": "percentage", "value": 70},
        }
        payload.update(overrides)
        return payload

    return build
