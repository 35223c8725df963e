"""Mini README: Pure deduction and aggregation helpers for the ledger.

Structure:
    * DerivedFields - deductions and net amount for one income entry.
    * compute_derived_fields - turns declared income fields into derived ones.
    * transaction_deductions - deductions of a stored entry from its own rates.
    * Summary / compute_summary - totals across a set of entries.
    * ChartBucket / compute_chart_buckets - per-day cash-flow volume.
    * build_service_income - income entry for a service from the price list.

Nothing here performs I/O or touches shared state. Missing optional inputs
count as zero. Aggregates use ``math.fsum`` so any permutation of the same
entries yields identical totals.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from .models import (
    PaymentMethod,
    PayoutKind,
    PayoutPolicy,
    ServiceCategory,
    ServicePriceEntry,
    Transaction,
    TransactionKind,
)

SERVICE_INCOME_CATEGORIES: Dict[ServiceCategory, str] = {
    ServiceCategory.RESIDENTIAL: "Limpeza Residencial",
    ServiceCategory.MONTHLY: "Limpeza Comercial",
    ServiceCategory.POST_CONSTRUCTION: "Pós-obra",
}


@dataclass(frozen=True)
class DerivedFields:
    card_surcharge_rate: float
    tax_deduction: float
    card_deduction: float
    payout_deduction: float
    net_amount: float

    @property
    def total_deductions(self) -> float:
        return self.tax_deduction + self.card_deduction + self.payout_deduction


def card_surcharge_rate(method: Optional[PaymentMethod]) -> float:
    """Return the surcharge percentage for a payment method (0 when unset)."""

    if method is None:
        return 0.0
    return method.surcharge_rate


def payout_deduction(gross_amount: float, policy: Optional[PayoutPolicy]) -> float:
    """Fixed payouts are taken as-is and may exceed the gross amount."""

    if policy is None or not policy.value:
        return 0.0
    if policy.kind is PayoutKind.FIXED:
        return policy.value
    return gross_amount * policy.value / 100


def compute_derived_fields(
    gross_amount: float,
    *,
    payment_method: Optional[PaymentMethod] = None,
    tax_rate: Optional[float] = None,
    payout_policy: Optional[PayoutPolicy] = None,
) -> DerivedFields:
    """Compute card rate, each deduction, and the net amount of an income."""

    card_rate = card_surcharge_rate(payment_method)
    tax = gross_amount * (tax_rate or 0.0) / 100
    card = gross_amount * card_rate / 100
    payout = payout_deduction(gross_amount, payout_policy)
    return DerivedFields(
        card_surcharge_rate=card_rate,
        tax_deduction=tax,
        card_deduction=card,
        payout_deduction=payout,
        net_amount=gross_amount - tax - card - payout,
    )


def transaction_deductions(transaction: Transaction) -> float:
    """Sum the deductions of an entry using the rates recorded on it."""

    if not transaction.is_income:
        return 0.0
    gross = transaction.gross_amount
    return math.fsum(
        (
            gross * (transaction.tax_rate or 0.0) / 100,
            gross * (transaction.card_surcharge_rate or 0.0) / 100,
            payout_deduction(gross, transaction.payout_policy),
        )
    )


@dataclass(frozen=True)
class Summary:
    total_income: float = 0.0
    total_expense: float = 0.0
    balance: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_summary(transactions: Iterable[Transaction]) -> Summary:
    """Fold entries into income, expense (including deductions), and balance."""

    income: List[float] = []
    expense: List[float] = []
    balance: List[float] = []
    for transaction in transactions:
        if transaction.is_income:
            deductions = transaction_deductions(transaction)
            income.append(transaction.gross_amount)
            expense.append(deductions)
            balance.append(transaction.gross_amount)
            balance.append(-deductions)
        else:
            expense.append(transaction.gross_amount)
            balance.append(-transaction.gross_amount)
    return Summary(
        total_income=math.fsum(income),
        total_expense=math.fsum(expense),
        balance=math.fsum(balance),
    )


@dataclass(frozen=True)
class ChartBucket:
    date: str
    income: float
    expense: float

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


def compute_chart_buckets(transactions: Iterable[Transaction]) -> List[ChartBucket]:
    """Group entries per day, counting income deductions as expense volume."""

    income: Dict[str, List[float]] = {}
    expense: Dict[str, List[float]] = {}
    for transaction in transactions:
        key = transaction.occurred_on.isoformat()
        income.setdefault(key, [])
        expense.setdefault(key, [])
        if transaction.is_income:
            income[key].append(transaction.gross_amount)
            expense[key].append(transaction_deductions(transaction))
        else:
            expense[key].append(transaction.gross_amount)
    return [
        ChartBucket(date=key, income=math.fsum(income[key]), expense=math.fsum(expense[key]))
        for key in sorted(income)
    ]


def build_service_income(
    service: ServicePriceEntry,
    *,
    client_name: str,
    occurred_on: date,
    times_per_month: int = 1,
    payment_method: PaymentMethod = PaymentMethod.PIX,
    tax_rate: Optional[float] = None,
    payout_policy: Optional[PayoutPolicy] = None,
    transaction_id: Optional[str] = None,
) -> Transaction:
    """Create the income entry recorded when a listed service is performed.

    Monthly services are billed ``times_per_month`` times their unit price.
    """

    gross = service.default_price
    description = f"{service.name} - {client_name}"
    if service.category is ServiceCategory.MONTHLY:
        times = max(int(times_per_month or 1), 1)
        gross = service.default_price * times
        description = f"{service.name} ({times}x) - {client_name}"

    derived = compute_derived_fields(
        gross,
        payment_method=payment_method,
        tax_rate=tax_rate,
        payout_policy=payout_policy,
    )
    return Transaction(
        transaction_id=transaction_id or str(uuid.uuid4()),
        kind=TransactionKind.INCOME,
        description=description,
        category=SERVICE_INCOME_CATEGORIES[service.category],
        gross_amount=gross,
        occurred_on=occurred_on,
        payment_method=payment_method,
        tax_rate=tax_rate or 0.0,
        card_surcharge_rate=derived.card_surcharge_rate,
        payout_policy=payout_policy,
        net_amount=derived.net_amount,
    )
