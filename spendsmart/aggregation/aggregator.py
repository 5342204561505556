"""
Spending Aggregations

DESIGN DECISION: Every function here is a pure function of the
transaction list (and budgets, where noted). No I/O, no mutation of the
inputs, deterministic output, so callers may memoize on the input.

Mappings preserve first-encounter order of their keys, which is the
order the dashboard charts draw their slices in.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from spendsmart.models.transaction import (
    Budget,
    BudgetProgress,
    BudgetStatus,
    Category,
    ChartPoint,
    ItemTotals,
    MonthlySpend,
    Transaction,
)


NEARING_LIMIT_PERCENT = Decimal("85")
FULL_PERCENT = Decimal("100")

_ZERO = Decimal("0")


def _expenses(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_expense]


def _sum_by(transactions: Iterable[Transaction], key) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for transaction in _expenses(transactions):
        bucket = key(transaction)
        totals[bucket] = totals.get(bucket, _ZERO) + transaction.total_amount
    return totals


def spend_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """
    Expense totals per category.

    An empty category string is its own bucket; nothing is dropped.
    """
    return _sum_by(transactions, lambda t: t.category)


def spend_by_store(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense totals per store name (exact spelling)."""
    return _sum_by(transactions, lambda t: t.store)


def total_spent(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of all expense amounts."""
    return sum((t.total_amount for t in _expenses(transactions)), _ZERO)


def total_recurring(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of every recurring transaction, expense or income."""
    return sum((t.total_amount for t in transactions if t.is_recurring), _ZERO)


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def monthly_history(
    transactions: Iterable[Transaction],
    now: date,
    month_count: int = 6,
) -> list[MonthlySpend]:
    """
    Expense totals for the last month_count calendar months, oldest first.

    The window ends at now's month. A transaction's month is the YYYY-MM
    prefix of its ISO date; transactions outside the window are ignored
    and months without expenses report 0.
    """
    if month_count < 1:
        raise ValueError(f"month_count must be at least 1, got {month_count}")

    buckets: dict[str, MonthlySpend] = {}
    for offset in range(-(month_count - 1), 1):
        year, month = _shift_month(now.year, now.month, offset)
        first_day = date(year, month, 1)
        key = first_day.isoformat()[:7]
        buckets[key] = MonthlySpend(
            month_key=key,
            month_label=first_day.strftime("%b"),
        )

    for transaction in _expenses(transactions):
        bucket = buckets.get(transaction.month_key)
        if bucket is not None:
            bucket.amount += transaction.total_amount

    return list(buckets.values())


def recurring_groups(transactions: Iterable[Transaction]) -> list[Transaction]:
    """
    Latest recurring transaction per store.

    Stores are compared lower-cased and trimmed. On equal dates the
    first one seen is kept. Result is sorted by amount, largest first;
    ties keep encounter order.
    """
    latest: dict[str, Transaction] = {}
    for transaction in transactions:
        if not transaction.is_recurring:
            continue
        key = transaction.store.lower().strip()
        current = latest.get(key)
        if current is None or transaction.transaction_date > current.transaction_date:
            latest[key] = transaction

    return sorted(latest.values(), key=lambda t: t.total_amount, reverse=True)


def item_breakdown(
    transactions: Iterable[Transaction],
) -> dict[str, dict[str, ItemTotals]]:
    """
    Quantity and spend per item name, grouped by category.

    Only expenses with items count. An item's category falls back to its
    transaction's category, then to "Other". Item names are trimmed.
    """
    breakdown: dict[str, dict[str, ItemTotals]] = {}
    for transaction in _expenses(transactions):
        for item in transaction.items:
            category = item.category or transaction.category or Category.OTHER.value
            name = item.name.strip()
            totals = breakdown.setdefault(category, {}).setdefault(name, ItemTotals())
            totals.quantity += item.quantity
            totals.total += item.total_price
    return breakdown


def sorted_items(items: dict[str, ItemTotals]) -> list[tuple[str, ItemTotals]]:
    """Items of one breakdown category, highest spend first."""
    return sorted(items.items(), key=lambda pair: pair[1].total, reverse=True)


def spent_for_category(transactions: Iterable[Transaction], category: str) -> Decimal:
    """Expense total for a category, compared case-insensitively."""
    wanted = category.lower()
    return sum(
        (t.total_amount for t in _expenses(transactions) if t.category.lower() == wanted),
        _ZERO,
    )


def budget_status(spent: Decimal, limit: Optional[Decimal]) -> BudgetProgress:
    """
    Percentage used and status for a budget.

    percentage = min(spent / limit * 100, 100). Exceeded at >= 100,
    Nearing Limit above 85, otherwise On Track. A missing, zero or
    negative limit counts as Exceeded at 100%.
    """
    if limit is None or limit <= 0:
        return BudgetProgress(
            spent=spent,
            limit=limit,
            percentage=FULL_PERCENT,
            status=BudgetStatus.EXCEEDED,
        )

    ratio = spent / limit * FULL_PERCENT
    if ratio >= FULL_PERCENT:
        status = BudgetStatus.EXCEEDED
    elif ratio > NEARING_LIMIT_PERCENT:
        status = BudgetStatus.NEARING_LIMIT
    else:
        status = BudgetStatus.ON_TRACK

    return BudgetProgress(
        spent=spent,
        limit=limit,
        percentage=max(min(ratio, FULL_PERCENT), _ZERO),
        status=status,
    )


def budget_overview(
    transactions: Sequence[Transaction],
    budgets: Iterable[Budget],
) -> list[BudgetProgress]:
    """Progress for every budget, in budget order."""
    overview = []
    for budget in budgets:
        progress = budget_status(spent_for_category(transactions, budget.category), budget.limit)
        overview.append(progress.model_copy(update={"category": budget.category}))
    return overview


def recent_transactions(transactions: Sequence[Transaction], limit: int = 10) -> list[Transaction]:
    """Most recently added transactions first."""
    return list(reversed(transactions))[:limit]


def to_chart_series(totals: dict[str, Decimal]) -> list[ChartPoint]:
    """Turn a totals mapping into {name, value} chart points."""
    return [ChartPoint(name=name, value=value) for name, value in totals.items()]
