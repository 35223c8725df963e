"""Mini README: Core package initializer for the cashflow ledger.

Exposes the logging helper and the error types used across the finance,
storage, and synchronisation modules so callers can import them without
knowing the exact module structure.
"""

from .errors import CashflowError, StorageError, ValidationError
from .logging_utils import get_logger

__all__ = ["CashflowError", "StorageError", "ValidationError", "get_logger"]
