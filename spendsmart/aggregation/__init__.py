"""Spending aggregation package."""

from spendsmart.aggregation.aggregator import (
    budget_overview,
    budget_status,
    item_breakdown,
    monthly_history,
    recent_transactions,
    recurring_groups,
    sorted_items,
    spend_by_category,
    spend_by_store,
    spent_for_category,
    to_chart_series,
    total_recurring,
    total_spent,
)

__all__ = [
    "budget_overview",
    "budget_status",
    "item_breakdown",
    "monthly_history",
    "recent_transactions",
    "recurring_groups",
    "sorted_items",
    "spend_by_category",
    "spend_by_store",
    "spent_for_category",
    "to_chart_series",
    "total_recurring",
    "total_spent",
]
