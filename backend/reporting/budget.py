"""Monthly budget generation and analysis from spending history."""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from backend.reporting.insights import round_amount
from shared.models import (
    Budget,
    BudgetAnalysis,
    BudgetHealth,
    BudgetStatus,
    OverallBudgetStatus,
    Transaction,
    TransactionType,
)


_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

DEFAULT_BUDGET_MULTIPLIER = Decimal("1.30")
CATEGORY_BUDGET_MULTIPLIERS: dict[str, Decimal] = {
    "housing": Decimal("1.05"),
    "utilities": Decimal("1.15"),
    "food": Decimal("1.25"),
    "transportation": Decimal("1.20"),
    "entertainment": Decimal("1.50"),
    "shopping": Decimal("1.40"),
    "healthcare": Decimal("1.10"),
    "education": Decimal("1.20"),
}


def _expense_totals(transactions: Sequence[Transaction], *, month: tuple[int, int] | None = None) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for transaction in transactions:
        if transaction.type != TransactionType.EXPENSE:
            continue
        if month is not None and (transaction.date.year, transaction.date.month) != month:
            continue
        totals[transaction.category] += transaction.amount
    return totals


def generate_budgets(transactions: Sequence[Transaction]) -> list[Budget]:
    """Derive one monthly budget per expense category with a headroom multiplier."""

    budgets: list[Budget] = []
    for category, total_spent in sorted(_expense_totals(transactions).items()):
        if total_spent <= 0:
            continue
        multiplier = CATEGORY_BUDGET_MULTIPLIERS.get(category.lower(), DEFAULT_BUDGET_MULTIPLIER)
        budgets.append(
            Budget(
                id=len(budgets) + 1,
                category=category,
                amount=round_amount(total_spent * multiplier),
            )
        )
    return budgets


def month_progress(today: date) -> tuple[int, int]:
    """Return (days passed, days remaining) in the month of `today`, each at least 1."""

    total_days = calendar.monthrange(today.year, today.month)[1]
    elapsed = today.day - 1
    return max(elapsed, 1), max(total_days - elapsed, 1)


def _category_status(percentage_used: Decimal) -> tuple[BudgetStatus, str]:
    if percentage_used >= 100:
        return BudgetStatus.OVER_BUDGET, "Over budget! Reduce spending immediately"
    if percentage_used >= 80:
        return BudgetStatus.WARNING, "Approaching budget limit - spend carefully"
    if percentage_used >= 60:
        return BudgetStatus.ON_TRACK, "On track - maintain current spending"
    return BudgetStatus.ON_TRACK, "Well under budget - good job!"


def _category_score(percentage_used: float) -> float:
    if percentage_used >= 100:
        return 0.0
    if percentage_used >= 90:
        return 20.0
    if percentage_used >= 80:
        return 50.0
    if percentage_used >= 70:
        return 75.0
    if percentage_used >= 50:
        return 90.0
    return 100.0


def calculate_budget_health_score(analyses: Sequence[BudgetAnalysis]) -> float:
    if not analyses:
        return 50.0
    return sum(_category_score(analysis.percentage_used) for analysis in analyses) / len(analyses)


def generate_budget_recommendations(
    *,
    health_score: float,
    overall_status: OverallBudgetStatus,
    alerts: Sequence[str],
    analyses: Sequence[BudgetAnalysis],
) -> list[str]:
    recommendations: list[str] = []

    if health_score >= 80:
        recommendations.append("Excellent budget management! Keep it up!")
        recommendations.append("Consider increasing your savings rate")
    elif health_score >= 60:
        recommendations.append("Good budget control with room for improvement")
        recommendations.append("Review categories approaching their limits")
    else:
        recommendations.append("Budget needs attention - consider reviewing spending habits")
        recommendations.append("Focus on reducing spending in over-budget categories")

    if overall_status == OverallBudgetStatus.CRITICAL:
        recommendations.append("Critical: Review all expenses immediately")
        recommendations.append("Cut non-essential spending this month")

    if alerts:
        recommendations.append("Check category-specific alerts for details")

    over_budget = [analysis.category for analysis in analyses if analysis.status == BudgetStatus.OVER_BUDGET]
    if over_budget:
        recommendations.append(f"Focus on reducing: {', '.join(over_budget)}")

    return recommendations


def analyze_budgets(budgets: Sequence[Budget], transactions: Sequence[Transaction], *, today: date) -> BudgetHealth:
    """Compare current-month spending with each budget."""

    spending = _expense_totals(transactions, month=(today.year, today.month))
    days_passed, days_remaining = month_progress(today)

    analyses: list[BudgetAnalysis] = []
    alerts: list[str] = []
    total_budgeted = _ZERO
    total_spent = _ZERO

    # One budget per category; a later entry replaces an earlier one.
    by_category = {budget.category: budget for budget in budgets}

    for budget in by_category.values():
        budgeted = Decimal(str(budget.amount))
        spent = spending.get(budget.category, _ZERO)
        percentage_used = spent / budgeted * _HUNDRED if budgeted > 0 else _ZERO

        status, recommendation = _category_status(percentage_used)
        if status == BudgetStatus.OVER_BUDGET:
            alerts.append(f"{budget.category} is over budget")
        elif status == BudgetStatus.WARNING:
            alerts.append(f"{budget.category} is approaching budget limit")

        predicted_spend = spent / days_passed * (days_passed + days_remaining)
        analyses.append(
            BudgetAnalysis(
                category=budget.category,
                budgeted=budget.amount,
                spent=round_amount(spent),
                remaining=round_amount(budgeted - spent),
                percentage_used=round_amount(percentage_used),
                status=status,
                days_remaining=days_remaining,
                predicted_spend=round_amount(predicted_spend),
                recommendation=recommendation,
            )
        )
        total_budgeted += budgeted
        total_spent += spent

    overall_percentage = total_spent / total_budgeted * _HUNDRED if total_budgeted > 0 else _ZERO
    if overall_percentage >= 90:
        overall_status = OverallBudgetStatus.CRITICAL
    elif overall_percentage >= 75:
        overall_status = OverallBudgetStatus.WARNING
    else:
        overall_status = OverallBudgetStatus.HEALTHY

    health_score = calculate_budget_health_score(analyses)
    return BudgetHealth(
        total_budgeted=round_amount(total_budgeted),
        total_spent=round_amount(total_spent),
        total_remaining=round_amount(total_budgeted - total_spent),
        overall_status=overall_status,
        budget_categories=analyses,
        alerts=alerts,
        health_score=round(health_score, 2),
        recommendations=generate_budget_recommendations(
            health_score=health_score,
            overall_status=overall_status,
            alerts=alerts,
            analyses=analyses,
        ),
    )
