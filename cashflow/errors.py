"""Mini README: Error taxonomy shared by the ledger, sync, and web layers.

Structure:
    * CashflowError - base class for every failure raised by this package.
    * ValidationError - malformed transaction or mutation payloads.
    * StorageError - any persistence fault surfaced by the ledger store.
"""

from __future__ import annotations


class CashflowError(Exception):
    """Base class for cashflow failures."""


class ValidationError(CashflowError, ValueError):
    """Raised when a payload cannot be turned into a valid ledger entry."""


class StorageError(CashflowError):
    """Raised when the underlying storage engine rejects an operation."""
