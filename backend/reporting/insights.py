"""Financial insights computed from a user's transactions."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal, ROUND_HALF_UP

from shared.models import Insights, Transaction, TransactionType, TrendData


_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def round_amount(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_health_score(savings_rate: Decimal, income: Decimal, expenses: Decimal) -> Decimal:
    """Score financial health on a 0..100 scale; 50 when there is no data."""

    score = Decimal("50")
    if income == 0 and expenses == 0:
        return score

    if savings_rate >= 20:
        score += 40
    elif savings_rate >= 10:
        score += 30
    elif savings_rate > 0:
        score += 20
    else:
        score -= 20

    if income >= 3000:
        score += 30
    elif income >= 2000:
        score += 20
    elif income >= 1000:
        score += 10

    if income > 0:
        expense_ratio = expenses / income
        if expense_ratio < Decimal("0.5"):
            score += 30
        elif expense_ratio < Decimal("0.7"):
            score += 20
        elif expense_ratio < Decimal("0.9"):
            score += 10
        else:
            score -= 10

    return min(max(score, _ZERO), _HUNDRED)


def _growth(current: Decimal, previous: Decimal) -> float:
    if previous == 0:
        return 0.0
    return round_amount((current - previous) / abs(previous) * _HUNDRED)


def calculate_trends(transactions: Sequence[Transaction]) -> TrendData:
    """Month-over-month growth between the two most recent months with data."""

    if not transactions:
        return TrendData(income_growth=0.0, expense_growth=0.0, savings_growth=0.0, spending_velocity=0.0)

    income_by_month: dict[tuple[int, int], Decimal] = defaultdict(lambda: _ZERO)
    expenses_by_month: dict[tuple[int, int], Decimal] = defaultdict(lambda: _ZERO)
    for transaction in transactions:
        month = (transaction.date.year, transaction.date.month)
        if transaction.type == TransactionType.INCOME:
            income_by_month[month] += transaction.amount
        else:
            expenses_by_month[month] += transaction.amount

    months = sorted(set(income_by_month) | set(expenses_by_month))
    velocity = min(1.0, len(transactions) / 30.0)
    if len(months) < 2:
        return TrendData(income_growth=0.0, expense_growth=0.0, savings_growth=0.0, spending_velocity=velocity)

    previous, current = months[-2], months[-1]
    previous_savings = income_by_month[previous] - expenses_by_month[previous]
    current_savings = income_by_month[current] - expenses_by_month[current]
    return TrendData(
        income_growth=_growth(income_by_month[current], income_by_month[previous]),
        expense_growth=_growth(expenses_by_month[current], expenses_by_month[previous]),
        savings_growth=_growth(current_savings, previous_savings),
        spending_velocity=velocity,
    )


def generate_recommendations(
    savings_rate: Decimal,
    spending: dict[str, Decimal],
    income: Decimal,
) -> list[str]:
    recommendations: list[str] = []

    if savings_rate < 10:
        recommendations.append("Aim to save at least 10% of your income")

    if savings_rate < 0:
        recommendations.append("You're spending more than you earn - consider cutting expenses")

    top_category = ""
    top_amount = _ZERO
    for category, amount in sorted(spending.items()):
        if amount > top_amount:
            top_category, top_amount = category, amount

    if top_category and income > 0 and top_amount > income * Decimal("0.3"):
        share = top_amount / income * _HUNDRED
        recommendations.append(f"Consider reducing {top_category} expenses ({share:.1f}% of income)")
    elif top_category and top_amount > 0 and income == 0:
        recommendations.append(f"Consider reducing {top_category} expenses - you need income to balance spending")

    if savings_rate > 20:
        recommendations.append("Great job! You're saving over 20% - consider investing")

    if len(spending) > 10:
        recommendations.append("You have many expense categories - consider budgeting")

    if not recommendations:
        recommendations.append("Your finances look healthy! Keep up the good work")

    return recommendations


def calculate_insights(transactions: Sequence[Transaction]) -> Insights:
    total_income = _ZERO
    total_expenses = _ZERO
    spending_by_category: dict[str, Decimal] = defaultdict(lambda: _ZERO)

    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            total_income += transaction.amount
        else:
            total_expenses += transaction.amount
            spending_by_category[transaction.category] += transaction.amount

    savings_rate = _ZERO
    if total_income > 0:
        savings_rate = (total_income - total_expenses) / total_income * _HUNDRED

    return Insights(
        net_worth=round_amount(total_income - total_expenses),
        monthly_income=round_amount(total_income),
        monthly_expenses=round_amount(total_expenses),
        savings_rate=round_amount(savings_rate),
        spending_by_category={name: round_amount(amount) for name, amount in spending_by_category.items()},
        financial_health_score=round_amount(calculate_health_score(savings_rate, total_income, total_expenses)),
        trend_analysis=calculate_trends(transactions),
        recommendations=generate_recommendations(savings_rate, dict(spending_by_category), total_income),
    )
