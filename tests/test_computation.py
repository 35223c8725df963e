"""Mini README: Tests for deductions, net amounts, summaries, and charts.

Structure:
    * test_credit_income_with_percentage_payout - worked credit card example.
    * test_net_amount_matches_deduction_formula - every present/absent rate combination.
    * test_fixed_payout_may_exceed_gross - negative net is allowed.
    * test_client_supplied_derived_fields_are_ignored - server recomputes derived fields.
    * test_expense_has_no_deduction_fields - expenses stay bare.
    * test_expense_rejects_income_fields - income-only fields are refused on expenses.
    * test_malformed_payloads_are_rejected - bad input, including non-finite payouts.
    * test_summary_of_empty_ledger_is_zero - empty input.
    * test_summary_for_single_expense - expense-only balance.
    * test_summary_counts_deductions_as_expense - deductions feed total expense.
    * test_summary_is_order_independent - permutations give one summary.
    * test_chart_buckets_group_by_date - per-date income and expense.
    * test_monthly_service_launch_multiplies_price - service launch helper.
"""

from __future__ import annotations

import itertools
from datetime import date

import pytest

from cashflow.errors import ValidationError
from cashflow.finance import (
    PaymentMethod,
    PayoutKind,
    PayoutPolicy,
    ServiceCategory,
    ServicePriceEntry,
    Summary,
    Transaction,
    TransactionKind,
    build_service_income,
    compute_chart_buckets,
    compute_derived_fields,
    compute_summary,
    parse_transaction,
)


def _expense(transaction_id: str, amount: float, occurred_on: date) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        kind=TransactionKind.EXPENSE,
        description="Produtos",
        category="Produtos de Limpeza",
        gross_amount=amount,
        occurred_on=occurred_on,
    )


def test_credit_income_with_percentage_payout(income_payload) -> None:
    """200 gross, 6% tax, credit 4.15%, 70% payout leaves 39.7."""

    transaction = parse_transaction(income_payload())

    assert transaction.card_surcharge_rate == pytest.approx(4.15)
    assert transaction.net_amount == pytest.approx(200 - 12 - 8.3 - 140)
    assert transaction.net_amount == pytest.approx(39.7)


@pytest.mark.parametrize(
    "method, tax_rate, payout",
    list(
        itertools.product(
            [None, *PaymentMethod],
            [None, 0.0, 6.0],
            [
                None,
                PayoutPolicy(PayoutKind.PERCENTAGE, 70.0),
                PayoutPolicy(PayoutKind.FIXED, 50.0),
            ],
        )
    ),
)
def test_net_amount_matches_deduction_formula(method, tax_rate, payout) -> None:
    """Net equals gross minus tax, card surcharge, and payout for every combination."""

    gross = 150.0
    derived = compute_derived_fields(
        gross, payment_method=method, tax_rate=tax_rate, payout_policy=payout
    )

    card_rate = {None: 0.0, "pix": 0.0, "cash": 0.0, "credit": 4.15, "debit": 1.99}[
        method.value if method else None
    ]
    payout_amount = 0.0
    if payout is not None:
        payout_amount = payout.value if payout.kind is PayoutKind.FIXED else gross * payout.value / 100
    expected = gross - gross * (tax_rate or 0) / 100 - gross * card_rate / 100 - payout_amount

    assert derived.card_surcharge_rate == pytest.approx(card_rate)
    assert derived.net_amount == pytest.approx(expected)


def test_fixed_payout_may_exceed_gross(income_payload) -> None:
    """A fixed payout larger than gross yields a negative net, not an error."""

    transaction = parse_transaction(
        income_payload(
            gross_amount=100,
            payment_method="pix",
            tax_rate=None,
            payout_policy={"kind": "fixed", "value": 150},
        )
    )

    assert transaction.net_amount == pytest.approx(-50.0)


def test_client_supplied_derived_fields_are_ignored(income_payload) -> None:
    """Derived fields sent by a client are recomputed."""

    transaction = parse_transaction(
        income_payload(net_amount=9999, card_surcharge_rate=0, payment_method="debit")
    )

    assert transaction.card_surcharge_rate == pytest.approx(1.99)
    assert transaction.net_amount == pytest.approx(200 - 12 - 3.98 - 140)


def test_expense_has_no_deduction_fields() -> None:
    """Expenses carry no payment method, rates, payout, or net."""

    transaction = parse_transaction(
        {
            "id": "tx-exp",
            "kind": "expense",
            "description": "Gasolina",
            "category": "Transporte",
            "gross_amount": "50",
            "occurred_on": "2024-06-11",
        }
    )

    assert transaction.payment_method is None
    assert transaction.tax_rate is None
    assert transaction.card_surcharge_rate is None
    assert transaction.payout_policy is None
    assert transaction.net_amount is None


def test_expense_rejects_income_fields() -> None:
    """Income-only fields on an expense are a validation error."""

    with pytest.raises(ValidationError):
        parse_transaction(
            {
                "id": "tx-exp",
                "kind": "expense",
                "description": "Gasolina",
                "category": "Transporte",
                "gross_amount": 50,
                "occurred_on": "2024-06-11",
                "tax_rate": 6,
            }
        )


@pytest.mark.parametrize(
    "overrides",
    [
        {"id": ""},
        {"description": None},
        {"gross_amount": 0},
        {"gross_amount": "abc"},
        {"kind": "transfer"},
        {"occurred_on": "10/06/2024"},
        {"payment_method": "cheque"},
        {"tax_rate": -1},
        {"payout_policy": {"kind": "share", "value": 10}},
        {"payout_policy": {"kind": "fixed", "value": "1e309"}},
        {"payout_policy": {"kind": "percentage", "value": "nan"}},
        {"payout_policy": {"kind": "fixed", "value": -5}},
    ],
)
def test_malformed_payloads_are_rejected(income_payload, overrides) -> None:
    """Bad ids, amounts, enums, dates, and payouts raise ValidationError."""

    with pytest.raises(ValidationError):
        parse_transaction(income_payload(**overrides))


def test_summary_of_empty_ledger_is_zero() -> None:
    """An empty ledger sums to zero."""

    assert compute_summary([]) == Summary(0.0, 0.0, 0.0)


def test_summary_for_single_expense() -> None:
    """A lone expense gives a negative balance."""

    summary = compute_summary([_expense("e1", 50.0, date(2024, 6, 1))])

    assert summary.total_income == 0
    assert summary.total_expense == pytest.approx(50.0)
    assert summary.balance == pytest.approx(-50.0)


def test_summary_counts_deductions_as_expense(income_payload) -> None:
    """Income deductions are counted on the expense side."""

    income = parse_transaction(income_payload())
    summary = compute_summary([income, _expense("e1", 50.0, date(2024, 6, 1))])

    assert summary.total_income == pytest.approx(200.0)
    assert summary.total_expense == pytest.approx(12 + 8.3 + 140 + 50)
    assert summary.balance == pytest.approx(39.7 - 50)
    assert summary.balance == pytest.approx(summary.total_income - summary.total_expense)


def test_summary_is_order_independent(income_payload) -> None:
    """Every ordering of the same entries gives the same summary."""

    entries = [
        parse_transaction(income_payload(id="a", gross_amount=0.1)),
        parse_transaction(income_payload(id="b", gross_amount=1234.56, payment_method="debit")),
        _expense("c", 0.3, date(2024, 5, 1)),
        _expense("d", 77.7, date(2024, 5, 2)),
    ]

    results = {compute_summary(order) for order in itertools.permutations(entries)}

    assert len(results) == 1


def test_chart_buckets_group_by_date(income_payload) -> None:
    """Chart buckets are per date, oldest first."""

    entries = [
        parse_transaction(income_payload(id="a", occurred_on="2024-06-10")),
        _expense("b", 30.0, date(2024, 6, 10)),
        _expense("c", 20.0, date(2024, 6, 9)),
    ]

    buckets = compute_chart_buckets(entries)

    assert [bucket.date for bucket in buckets] == ["2024-06-09", "2024-06-10"]
    assert buckets[0].income == 0
    assert buckets[0].expense == pytest.approx(20.0)
    assert buckets[1].income == pytest.approx(200.0)
    assert buckets[1].expense == pytest.approx(160.3 + 30.0)


def test_monthly_service_launch_multiplies_price() -> None:
    """Monthly launches multiply the price by visits per month."""

    service = ServicePriceEntry("men-4h", ServiceCategory.MONTHLY, "Mensal Serviço de 4h", 100.0)

    transaction = build_service_income(
        service,
        client_name="Condomínio Sol",
        occurred_on=date(2024, 6, 1),
        times_per_month=4,
        payment_method=PaymentMethod.CASH,
        tax_rate=6.0,
        payout_policy=PayoutPolicy(PayoutKind.FIXED, 100.0),
        transaction_id="launch-1",
    )

    assert transaction.gross_amount == pytest.approx(400.0)
    assert transaction.description == "Mensal Serviço de 4h (4x) - Condomínio Sol"
    assert transaction.category == "Limpeza Comercial"
    assert transaction.net_amount == pytest.approx(400 - 24 - 100)
