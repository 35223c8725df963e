"""Mini README: First-run seed data for the ledger store.

Creates the fixed service price list and the default business tax rate the
first time the service starts against an empty database. Rows that already
exist are never overwritten, so prices edited by staff survive restarts.
"""

from __future__ import annotations

from typing import List

from ..finance.models import ServiceCategory, ServicePriceEntry
from ..logging_utils import get_logger
from .ledger_store import LedgerStore

LOGGER = get_logger(__name__)

TAX_RATE_SETTING = "tax_rate"

DEFAULT_SERVICES: List[ServicePriceEntry] = [
    ServicePriceEntry("res-8h", ServiceCategory.RESIDENTIAL, "Serviço de 8h", 200.0),
    ServicePriceEntry("res-6h", ServiceCategory.RESIDENTIAL, "Serviço de 6h", 160.0),
    ServicePriceEntry("res-4h", ServiceCategory.RESIDENTIAL, "Serviço de 4h", 120.0),
    ServicePriceEntry("men-8h", ServiceCategory.MONTHLY, "Mensal Serviço de 8h", 180.0),
    ServicePriceEntry("men-6h", ServiceCategory.MONTHLY, "Mensal Serviço de 6h", 140.0),
    ServicePriceEntry("men-4h", ServiceCategory.MONTHLY, "Mensal Serviço de 4h", 100.0),
    ServicePriceEntry("pos-obra", ServiceCategory.POST_CONSTRUCTION, "Limpeza Pós-Obra", 500.0),
]


def seed_defaults(store: LedgerStore, default_tax_rate: str = "6") -> None:
    """Insert the default services and tax rate when they are missing."""

    created = store.insert_default_services(DEFAULT_SERVICES)
    if store.insert_setting_if_absent(TAX_RATE_SETTING, default_tax_rate):
        LOGGER.info("Seeded default %s=%s", TAX_RATE_SETTING, default_tax_rate)
    if created:
        LOGGER.info("Seeded %s default services", created)
