"""Mini README: Write-path parsing for transaction payloads.

``parse_transaction`` is applied to every transaction submitted by a client,
over HTTP or the live channel, before it reaches the ledger store. It rejects
malformed entries with ``ValidationError`` and recomputes the derived income
fields so a stored ``net_amount`` always matches the declared rates at the
moment the entry was logged. Client-supplied ``net_amount`` and
``card_surcharge_rate`` values are ignored.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from ..errors import ValidationError
from .computation import compute_derived_fields
from .models import (
    PaymentMethod,
    PayoutPolicy,
    Transaction,
    TransactionKind,
    coerce_float,
    coerce_optional_float,
    parse_date,
)

INCOME_ONLY_FIELDS = ("payment_method", "tax_rate", "payout_policy")


def _require_text(payload: Mapping[str, Any], name: str) -> str:
    value = payload.get(name)
    if value is None or not str(value).strip():
        raise ValidationError(f"Field '{name}' is required.")
    return str(value).strip()


def _non_negative(name: str, value: Any) -> Optional[float]:
    number = coerce_optional_float(name, value)
    if number is not None and (number < 0 or not math.isfinite(number)):
        raise ValidationError(f"Field '{name}' must be a non-negative number.")
    return number


def parse_transaction(payload: Mapping[str, Any]) -> Transaction:
    """Validate a client payload and return the entry to persist."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Transaction payload must be an object.")

    transaction_id = _require_text(payload, "id")
    kind = TransactionKind.from_str(payload.get("kind"))
    description = _require_text(payload, "description")
    category = _require_text(payload, "category")
    gross = coerce_float("gross_amount", payload.get("gross_amount"))
    if gross <= 0 or not math.isfinite(gross):
        raise ValidationError("Field 'gross_amount' must be a positive number.")
    occurred_on = parse_date(payload.get("occurred_on"))

    if kind is TransactionKind.EXPENSE:
        present = [name for name in INCOME_ONLY_FIELDS if payload.get(name) not in (None, "")]
        if present:
            raise ValidationError(
                f"Expense entries cannot carry income deductions: {', '.join(present)}"
            )
        return Transaction(
            transaction_id=transaction_id,
            kind=kind,
            description=description,
            category=category,
            gross_amount=gross,
            occurred_on=occurred_on,
        )

    method_value = payload.get("payment_method")
    payment_method = PaymentMethod.from_str(method_value) if method_value else None
    tax_rate = _non_negative("tax_rate", payload.get("tax_rate"))
    payout_value = payload.get("payout_policy")
    payout_policy = PayoutPolicy.from_dict(payout_value) if payout_value else None

    derived = compute_derived_fields(
        gross,
        payment_method=payment_method,
        tax_rate=tax_rate,
        payout_policy=payout_policy,
    )
    return Transaction(
        transaction_id=transaction_id,
        kind=kind,
        description=description,
        category=category,
        gross_amount=gross,
        occurred_on=occurred_on,
        payment_method=payment_method,
        tax_rate=tax_rate,
        card_surcharge_rate=derived.card_surcharge_rate,
        payout_policy=payout_policy,
        net_amount=derived.net_amount,
    )
