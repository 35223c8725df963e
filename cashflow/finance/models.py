"""Mini README: Ledger entry types shared by the server and client mirrors.

Structure:
    * TransactionKind - enum representing income versus expense entries.
    * PaymentMethod - how an income was paid, carrying its card surcharge.
    * PayoutPolicy - the provider's cut of an income (percentage or fixed).
    * Transaction - dataclass storing a ledger entry and its derived fields.
    * ServiceCategory / ServicePriceEntry - the seeded service price list.

``Transaction.from_dict`` restores an entry exactly as it was stored or
broadcast, keeping the derived ``net_amount`` untouched. Fresh client
payloads go through ``cashflow.finance.validation.parse_transaction``
instead, which validates and recomputes the derived fields.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..errors import ValidationError


class TransactionKind(str, Enum):
    """Enumerate the supported transaction kinds."""

    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def from_str(cls, value: object) -> "TransactionKind":
        """Coerce arbitrary casing into a valid transaction kind."""

        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValidationError(f"Unsupported transaction kind: {value}") from error


class PaymentMethod(str, Enum):
    """Payment methods accepted for income entries."""

    PIX = "pix"
    CASH = "cash"
    CREDIT = "credit"
    DEBIT = "debit"

    @classmethod
    def from_str(cls, value: object) -> "PaymentMethod":
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValidationError(f"Unsupported payment method: {value}") from error

    @property
    def surcharge_rate(self) -> float:
        """Card processing fee, as a percentage of gross."""

        return CARD_SURCHARGE_RATES[self]


CARD_SURCHARGE_RATES: Dict[PaymentMethod, float] = {
    PaymentMethod.PIX: 0.0,
    PaymentMethod.CASH: 0.0,
    PaymentMethod.CREDIT: 4.15,
    PaymentMethod.DEBIT: 1.99,
}


class PayoutKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

    @classmethod
    def from_str(cls, value: object) -> "PayoutKind":
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValidationError(f"Unsupported payout kind: {value}") from error


@dataclass(frozen=True)
class PayoutPolicy:
    """A downstream provider's share of an income entry."""

    kind: PayoutKind
    value: float

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PayoutPolicy":
        if not isinstance(payload, Mapping):
            raise ValidationError("Payout policy must be an object with 'kind' and 'value'.")
        value = coerce_float("payout_policy.value", payload.get("value"))
        if value < 0 or not math.isfinite(value):
            raise ValidationError("Payout value must be a finite, non-negative number.")
        return cls(kind=PayoutKind.from_str(payload.get("kind")), value=value)

    def as_dict(self) -> Dict[str, object]:
        return {"kind": self.kind.value, "value": self.value}


@dataclass(slots=True)
class Transaction:
    """Represent a ledger entry; income entries carry their deductions."""

    transaction_id: str
    kind: TransactionKind
    description: str
    category: str
    gross_amount: float
    occurred_on: date
    payment_method: Optional[PaymentMethod] = None
    tax_rate: Optional[float] = None
    card_surcharge_rate: Optional[float] = None
    payout_policy: Optional[PayoutPolicy] = None
    net_amount: Optional[float] = None

    @property
    def is_income(self) -> bool:
        return self.kind is TransactionKind.INCOME

    def as_dict(self) -> Dict[str, object]:
        """Export the transaction with JSON-serialisable values."""

        return {
            "id": self.transaction_id,
            "kind": self.kind.value,
            "description": self.description,
            "category": self.category,
            "gross_amount": self.gross_amount,
            "occurred_on": self.occurred_on.isoformat(),
            "payment_method": self.payment_method.value if self.payment_method else None,
            "tax_rate": self.tax_rate,
            "card_surcharge_rate": self.card_surcharge_rate,
            "payout_policy": self.payout_policy.as_dict() if self.payout_policy else None,
            "net_amount": self.net_amount,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Transaction":
        """Restore a stored or broadcast entry without recomputing it."""

        try:
            transaction_id = payload["id"]
        except KeyError as error:
            raise ValidationError("Transaction payload is missing 'id'.") from error
        payout = payload.get("payout_policy")
        method = payload.get("payment_method")
        return cls(
            transaction_id=str(transaction_id),
            kind=TransactionKind.from_str(payload.get("kind")),
            description=str(payload.get("description") or ""),
            category=str(payload.get("category") or ""),
            gross_amount=coerce_float("gross_amount", payload.get("gross_amount")),
            occurred_on=parse_date(payload.get("occurred_on")),
            payment_method=PaymentMethod.from_str(method) if method else None,
            tax_rate=coerce_optional_float("tax_rate", payload.get("tax_rate")),
            card_surcharge_rate=coerce_optional_float(
                "card_surcharge_rate", payload.get("card_surcharge_rate")
            ),
            payout_policy=PayoutPolicy.from_dict(payout) if payout else None,
            net_amount=coerce_optional_float("net_amount", payload.get("net_amount")),
        )


class ServiceCategory(str, Enum):
    RESIDENTIAL = "residencial"
    MONTHLY = "mensal"
    POST_CONSTRUCTION = "pos-obra"


@dataclass(slots=True)
class ServicePriceEntry:
    """A named service with its current default price."""

    service_id: str
    category: ServiceCategory
    name: str
    default_price: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.service_id,
            "category": self.category.value,
            "name": self.name,
            "default_price": self.default_price,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ServicePriceEntry":
        try:
            category = ServiceCategory(str(payload.get("category")))
        except ValueError as error:
            raise ValidationError(
                f"Unsupported service category: {payload.get('category')}"
            ) from error
        return cls(
            service_id=str(payload["id"]),
            category=category,
            name=str(payload.get("name") or ""),
            default_price=coerce_float("default_price", payload.get("default_price")),
        )


def parse_date(value: object) -> date:
    """Parse ISO formatted strings or date objects safely."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as error:
            raise ValidationError(f"Invalid date: {value!r}") from error
    raise ValidationError("Dates must be provided as ISO strings or date/datetime instances.")


def coerce_float(name: str, value: object) -> float:
    """Convert numeric payload values, rejecting booleans and garbage."""

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"Field '{name}' must be a number.")
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as error:
        raise ValidationError(f"Field '{name}' must be a number, got {value!r}.") from error


def coerce_optional_float(name: str, value: object) -> Optional[float]:
    if value is None or value == "":
        return None
    return coerce_float(name, value)
