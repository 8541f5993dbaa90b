"""Tests for financial insights over a user's transactions."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from backend.reporting.insights import calculate_health_score, calculate_insights, calculate_trends, round_amount
from shared.models import Transaction, TransactionType
from tests.fakes import USER_A


def _tx(amount: str, category: str, type: TransactionType, on: date = date(2025, 1, 10)) -> Transaction:
    now = datetime(2025, 1, 31, tzinfo=timezone.utc)
    return Transaction(
        id=uuid4(),
        user_id=USER_A,
        amount=Decimal(amount),
        description=category,
        category=category,
        date=on,
        type=type,
        created_at=now,
        updated_at=now,
    )


def test_insights_for_healthy_saver() -> None:
    transactions = [
        _tx("5000", "salary", TransactionType.INCOME),
        _tx("1000", "food", TransactionType.EXPENSE),
        _tx("500", "housing", TransactionType.EXPENSE),
    ]

    insights = calculate_insights(transactions)

    assert insights.net_worth == 3500.0
    assert insights.monthly_income == 5000.0
    assert insights.monthly_expenses == 1500.0
    assert insights.savings_rate == 70.0
    assert insights.spending_by_category == {"food": 1000.0, "housing": 500.0}
    assert insights.financial_health_score == 100.0
    assert insights.recommendations == ["Great job! You're saving over 20% - consider investing"]


def test_insights_without_transactions_are_neutral() -> None:
    insights = calculate_insights([])

    assert insights.net_worth == 0.0
    assert insights.savings_rate == 0.0
    assert insights.financial_health_score == 50.0
    assert insights.spending_by_category == {}
    assert insights.trend_analysis.spending_velocity == 0.0
    assert insights.recommendations == ["Aim to save at least 10% of your income"]


def test_insights_with_expenses_only() -> None:
    insights = calculate_insights([_tx("100", "food", TransactionType.EXPENSE)])

    assert insights.financial_health_score == 30.0
    assert insights.recommendations == [
        "Aim to save at least 10% of your income",
        "Consider reducing food expenses - you need income to balance spending",
    ]


def test_overspending_recommendations_include_top_category_share() -> None:
    insights = calculate_insights(
        [
            _tx("1000", "salary", TransactionType.INCOME),
            _tx("900", "housing", TransactionType.EXPENSE),
            _tx("300", "food", TransactionType.EXPENSE),
        ]
    )

    assert insights.savings_rate == -20.0
    assert insights.recommendations == [
        "Aim to save at least 10% of your income",
        "You're spending more than you earn - consider cutting expenses",
        "Consider reducing housing expenses (90.0% of income)",
    ]


def test_trends_compare_two_most_recent_months() -> None:
    transactions = [
        _tx("1000", "salary", TransactionType.INCOME, on=date(2025, 1, 5)),
        _tx("500", "food", TransactionType.EXPENSE, on=date(2025, 1, 6)),
        _tx("1500", "salary", TransactionType.INCOME, on=date(2025, 2, 5)),
        _tx("1000", "food", TransactionType.EXPENSE, on=date(2025, 2, 6)),
    ]

    trends = calculate_trends(transactions)

    assert trends.income_growth == 50.0
    assert trends.expense_growth == 100.0
    assert trends.savings_growth == 0.0
    assert trends.spending_velocity == pytest.approx(4 / 30)


def test_trends_single_month_has_no_growth() -> None:
    trends = calculate_trends([_tx("10", "food", TransactionType.EXPENSE)])

    assert trends.income_growth == 0.0
    assert trends.expense_growth == 0.0


def test_health_score_is_clamped() -> None:
    score = calculate_health_score(Decimal("-500"), Decimal("100"), Decimal("600"))

    assert Decimal("0") <= score <= Decimal("100")


def test_round_amount_rounds_half_up_to_cents() -> None:
    assert round_amount(Decimal("1.005")) == 1.01
    assert round_amount(Decimal("2.344")) == 2.34
