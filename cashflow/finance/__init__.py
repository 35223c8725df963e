"""Mini README: Finance types and the pure computation engine.

This package groups the ledger entry model, the write-path validator, and
the deduction / summary helpers shared by the server and client mirrors.
"""

from .computation import (
    ChartBucket,
    DerivedFields,
    Summary,
    build_service_income,
    compute_chart_buckets,
    compute_derived_fields,
    compute_summary,
    transaction_deductions,
)
from .models import (
    PaymentMethod,
    PayoutKind,
    PayoutPolicy,
    ServiceCategory,
    ServicePriceEntry,
    Transaction,
    TransactionKind,
)
from .validation import parse_transaction

__all__ = [
    "ChartBucket",
    "DerivedFields",
    "PaymentMethod",
    "PayoutKind",
    "PayoutPolicy",
    "ServiceCategory",
    "ServicePriceEntry",
    "Summary",
    "Transaction",
    "TransactionKind",
    "build_service_income",
    "compute_chart_buckets",
    "compute_derived_fields",
    "compute_summary",
    "parse_transaction",
    "transaction_deductions",
]
