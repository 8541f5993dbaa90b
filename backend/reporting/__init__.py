"""Read-only financial analyses over a user's transactions."""

from backend.reporting.budget import analyze_budgets, generate_budgets
from backend.reporting.insights import calculate_insights

__all__ = ["analyze_budgets", "calculate_insights", "generate_budgets"]
