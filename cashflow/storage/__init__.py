"""Mini README: Persistence for the authoritative ledger.

Exposes the SQLAlchemy-backed ``LedgerStore`` and the first-run seeding
helper used by the CLI and the web application factory.
"""

from .bootstrap import DEFAULT_SERVICES, TAX_RATE_SETTING, seed_defaults
from .ledger_store import LedgerStore, create_ledger_engine

__all__ = [
    "DEFAULT_SERVICES",
    "LedgerStore",
    "TAX_RATE_SETTING",
    "create_ledger_engine",
    "seed_defaults",
]
