from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum
from typing import Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field

from .base_types import Direction, ExpenseCategory
from .records import Expense, Transaction, as_utc


class PeriodGranularity(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


MAX_BUCKETS = {
    PeriodGranularity.DAILY: 366,
    PeriodGranularity.WEEKLY: 53,
    PeriodGranularity.MONTHLY: 24,
}


class TransactionCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_: int = Field(default=0, alias="in")
    out: int = 0


class PeriodProfitReport(BaseModel):
    revenue: Decimal = Decimal(0)
    costs: Decimal = Decimal(0)
    expenses: Decimal = Decimal(0)
    net_profit: Decimal = Decimal(0)
    transaction_count: TransactionCount = Field(default_factory=TransactionCount)


class PeriodBucket(PeriodProfitReport):
    label: str
    start: datetime
    end: datetime


def calculate_period_profit(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    start: datetime,
    end: datetime,
) -> PeriodProfitReport:
    """Cash-basis P&L for records dated within ``[start, end]``.

    Sales and purchases are not matched: a sale inside the window counts as
    revenue even when the vehicle was bought before it. Naive bounds are read
    as UTC, like record dates.
    """
    start, end = as_utc(start), as_utc(end)
    return _period_profit(transactions, expenses, lambda moment: start <= moment <= end)


def period_breakdown(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    start: datetime,
    end: datetime,
    granularity: PeriodGranularity = PeriodGranularity.MONTHLY,
) -> list[PeriodBucket]:
    """Split ``[start, end]`` into consecutive daily, weekly or monthly buckets.

    Buckets are half-open ``[bucket_start, next_start)`` except the last one,
    which is clipped to ``end`` and includes it, so a record falls in at most
    one bucket.
    """
    transactions = list(transactions)
    expenses = list(expenses)
    start, end = as_utc(start), as_utc(end)

    buckets: list[PeriodBucket] = []
    current = start
    while current <= end and len(buckets) < MAX_BUCKETS[granularity]:
        next_start = _next_bucket_start(current, granularity)
        if next_start >= end:
            bucket_end = end
            report = calculate_period_profit(transactions, expenses, current, end)
        else:
            bucket_end = next_start
            report = _period_profit(
                transactions,
                expenses,
                lambda moment, lo=current, hi=next_start: lo <= moment < hi,
            )

        buckets.append(
            PeriodBucket(
                label=_bucket_label(current, granularity),
                start=current,
                end=bucket_end,
                **report.model_dump(by_alias=True),
            )
        )
        if bucket_end == end:
            break
        current = next_start

    return buckets


def expenses_by_category(
    expenses: Iterable[Expense],
    start: datetime,
    end: datetime,
) -> dict[ExpenseCategory, Decimal]:
    start, end = as_utc(start), as_utc(end)
    totals: dict[ExpenseCategory, Decimal] = {}
    for expense in expenses:
        if start <= expense.date <= end:
            totals[expense.category] = totals.get(expense.category, Decimal(0)) + expense.amount
    return totals


def _period_profit(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    contains: Callable[[datetime], bool],
) -> PeriodProfitReport:
    in_range = [t for t in transactions if contains(t.date)]
    acquisitions = [t for t in in_range if t.direction == Direction.IN]
    disposals = [t for t in in_range if t.direction == Direction.OUT]

    revenue = sum((t.total_price for t in disposals), start=Decimal(0))
    costs = sum((t.total_price for t in acquisitions), start=Decimal(0))
    expense_total = sum((e.amount for e in expenses if contains(e.date)), start=Decimal(0))

    return PeriodProfitReport(
        revenue=revenue,
        costs=costs,
        expenses=expense_total,
        net_profit=revenue - costs - expense_total,
        transaction_count=TransactionCount(in_=len(acquisitions), out=len(disposals)),
    )


def _next_bucket_start(current: datetime, granularity: PeriodGranularity) -> datetime:
    if granularity == PeriodGranularity.DAILY:
        return current + timedelta(days=1)
    if granularity == PeriodGranularity.WEEKLY:
        return current + timedelta(days=7)

    month_start = current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if month_start.month == 12:
        return month_start.replace(year=month_start.year + 1, month=1)
    return month_start.replace(month=month_start.month + 1)


def _bucket_label(current: datetime, granularity: PeriodGranularity) -> str:
    if granularity == PeriodGranularity.DAILY:
        return current.date().isoformat()
    if granularity == PeriodGranularity.WEEKLY:
        return f"Week of {current.date().isoformat()}"
    return f"{current.year}-{current.month:02d}"
