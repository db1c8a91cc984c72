"""
Ledger Aggregation

DESIGN DECISION: Summary figures are PURE functions of the record list and
an explicit 'now'. Nothing is cached in mutable globals, so the same
records and the same instant always give the same dashboard.

Window semantics are calendar based: a record counts towards "weekly" if
it falls in the same calendar week as now, not in the last seven days.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from shopkeeper.config.settings import WeekStart
from shopkeeper.models.catalog import Product
from shopkeeper.models.records import (
    RecordKind,
    SummaryStatistics,
    TransactionRecord,
)


def week_start_date(day: date, week_start: WeekStart = WeekStart.SUNDAY) -> date:
    """First day of the calendar week containing day."""
    offset = (day.weekday() - int(week_start)) % 7
    return day - timedelta(days=offset)


def _as_local(timestamp: datetime, now: datetime) -> datetime:
    """Express timestamp in now's timezone when both are aware."""
    if timestamp.tzinfo is not None and now.tzinfo is not None:
        return timestamp.astimezone(now.tzinfo)
    return timestamp


def summarize(
    records: Iterable[TransactionRecord],
    now: datetime,
    week_start: WeekStart = WeekStart.SUNDAY,
    credit_balance: int = 0,
) -> SummaryStatistics:
    """
    Compute summary statistics for the instant now.

    Single pass over the records, no sorting. Sale totals go to the sale
    windows and to total_sales; everything else goes to the investment
    windows and to the per-category breakdown.
    """
    stats = SummaryStatistics(computed_at=now, ai_credits=credit_balance)

    today = now.date()
    this_week = week_start_date(today, week_start)

    for record in records:
        day = _as_local(record.timestamp, now).date()
        same_year = day.year == today.year
        same_month = same_year and day.month == today.month
        same_week = week_start_date(day, week_start) == this_week
        same_day = day == today

        amount = record.total_cost

        if record.kind == RecordKind.SALE:
            stats.total_sales += amount
            if same_day:
                stats.daily += amount
            if same_week:
                stats.weekly += amount
            if same_month:
                stats.monthly += amount
            if same_year:
                stats.yearly += amount
        else:
            if same_day:
                stats.daily_investment += amount
            if same_week:
                stats.weekly_investment += amount
            if same_month:
                stats.monthly_investment += amount
            if same_year:
                stats.yearly_investment += amount
            stats.by_category[record.category] += amount

    return stats


def ice_balance(records: Iterable[TransactionRecord]) -> int:
    """
    Ice bags outstanding: total delivered minus total returned.

    Not clamped. A negative balance means more bags were returned than
    delivered, which is a data-entry mistake the owner should see.
    """
    delivered = 0
    returned = 0
    for record in records:
        if record.ice_metrics is not None:
            delivered += record.ice_metrics.delivered
            returned += record.ice_metrics.returned
    return delivered - returned


def low_stock_products(products: Iterable[Product]) -> list[Product]:
    """Products whose stock has fallen to their minimum level."""
    return [product for product in products if product.is_low_stock]


def category_breakdown(stats: SummaryStatistics) -> list[dict]:
    """Per-category intake totals as chart rows, largest first."""
    rows = [
        {"category": category.value, "amount": float(amount)}
        for category, amount in stats.by_category.items()
    ]
    rows.sort(key=lambda row: row["amount"], reverse=True)
    return rows


def gross_margin(stats: SummaryStatistics) -> Decimal:
    """All-time sales minus all-time intake spend."""
    spent = sum(stats.by_category.values(), Decimal("0.00"))
    return stats.total_sales - spent
