from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from domain.base_types import Direction, ExpenseCategory
from domain.period import (
    PeriodGranularity,
    calculate_period_profit,
    expenses_by_category,
    period_breakdown,
)
from tests.constants import OTHER_VEHICLE_ID, VEHICLE_ID
from tests.helpers.records import day, make_expense, make_transaction

IN = Direction.IN
OUT = Direction.OUT

END_OF_MARCH = datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc)


def test_period_profit() -> None:
    transactions = [
        make_transaction(IN, VEHICLE_ID, 10000, "2024-01-01"),
        make_transaction(OUT, VEHICLE_ID, 15000, "2024-01-15"),
        make_transaction(IN, VEHICLE_ID, 12000, "2024-02-01"),
    ]
    expenses = [
        make_expense(VEHICLE_ID, 500, "2024-01-10"),
        make_expense(VEHICLE_ID, 300, "2024-02-10"),
    ]

    result = calculate_period_profit(transactions, expenses, day("2024-01-01"), day("2024-01-31"))

    assert result.revenue == Decimal(15000)
    assert result.costs == Decimal(10000)
    assert result.expenses == Decimal(500)
    assert result.net_profit == Decimal(4500)
    assert result.transaction_count.in_ == 1
    assert result.transaction_count.out == 1


def test_sale_of_vehicle_bought_before_window_is_pure_revenue() -> None:
    transactions = [
        make_transaction(IN, VEHICLE_ID, 10000, "2023-11-01"),
        make_transaction(OUT, VEHICLE_ID, 15000, "2024-01-15"),
    ]

    result = calculate_period_profit(transactions, [], day("2024-01-01"), day("2024-01-31"))

    assert result.revenue == Decimal(15000)
    assert result.costs == Decimal(0)
    assert result.net_profit == Decimal(15000)
    assert result.transaction_count.in_ == 0
    assert result.transaction_count.out == 1


def test_window_bounds_are_inclusive() -> None:
    transactions = [
        make_transaction(IN, VEHICLE_ID, 10000, "2024-01-01"),
        make_transaction(OUT, VEHICLE_ID, 15000, "2024-01-31"),
        make_transaction(IN, OTHER_VEHICLE_ID, 9000, datetime(2024, 1, 31, 0, 0, 1, tzinfo=timezone.utc)),
    ]
    expenses = [make_expense(VEHICLE_ID, 100, "2024-01-31")]

    result = calculate_period_profit(transactions, expenses, day("2024-01-01"), day("2024-01-31"))

    assert result.revenue == Decimal(15000)
    assert result.costs == Decimal(10000)
    assert result.expenses == Decimal(100)


def test_fleet_expenses_count_towards_period() -> None:
    expenses = [
        make_expense(None, 250, "2024-01-05", ExpenseCategory.TRANSPORT),
        make_expense(VEHICLE_ID, 100, "2024-01-06"),
    ]

    result = calculate_period_profit([], expenses, day("2024-01-01"), day("2024-01-31"))

    assert result.expenses == Decimal(350)
    assert result.net_profit == Decimal(-350)


def test_empty_period() -> None:
    result = calculate_period_profit([], [], day("2024-01-01"), day("2024-01-31"))

    assert result.revenue == result.costs == result.expenses == result.net_profit == Decimal(0)
    assert result.transaction_count.in_ == result.transaction_count.out == 0


def test_transaction_count_serializes_with_in_alias() -> None:
    transactions = [make_transaction(IN, VEHICLE_ID, 10000, "2024-01-01")]

    dumped = calculate_period_profit(transactions, [], day("2024-01-01"), day("2024-01-31")).model_dump(by_alias=True)

    assert dumped["transaction_count"] == {"in": 1, "out": 0}


def test_monthly_breakdown_covers_window() -> None:
    transactions = [
        make_transaction(IN, VEHICLE_ID, 10000, "2024-01-01"),
        make_transaction(OUT, VEHICLE_ID, 15000, "2024-02-01"),
        make_transaction(IN, OTHER_VEHICLE_ID, 8000, "2024-03-31"),
    ]
    expenses = [
        make_expense(VEHICLE_ID, 500, "2024-01-31"),
        make_expense(OTHER_VEHICLE_ID, 200, "2024-03-15"),
    ]
    start = day("2024-01-01")

    buckets = period_breakdown(transactions, expenses, start, END_OF_MARCH, PeriodGranularity.MONTHLY)

    assert [bucket.label for bucket in buckets] == ["2024-01", "2024-02", "2024-03"]
    assert [bucket.start for bucket in buckets] == [day("2024-01-01"), day("2024-02-01"), day("2024-03-01")]
    assert buckets[-1].end == END_OF_MARCH
    assert [bucket.costs for bucket in buckets] == [Decimal(10000), Decimal(0), Decimal(8000)]
    assert [bucket.revenue for bucket in buckets] == [Decimal(0), Decimal(15000), Decimal(0)]
    assert [bucket.expenses for bucket in buckets] == [Decimal(500), Decimal(0), Decimal(200)]

    overall = calculate_period_profit(transactions, expenses, start, END_OF_MARCH)
    assert sum((bucket.net_profit for bucket in buckets), start=Decimal(0)) == overall.net_profit


def test_monthly_breakdown_rolls_over_year() -> None:
    buckets = period_breakdown([], [], day("2023-12-15"), day("2024-01-20"), PeriodGranularity.MONTHLY)

    assert [bucket.label for bucket in buckets] == ["2023-12", "2024-01"]
    assert buckets[1].start == day("2024-01-01")
    assert buckets[1].end == day("2024-01-20")


def test_weekly_breakdown() -> None:
    transactions = [make_transaction(OUT, VEHICLE_ID, 15000, "2024-01-08")]

    buckets = period_breakdown(transactions, [], day("2024-01-01"), day("2024-01-20"), PeriodGranularity.WEEKLY)

    assert [bucket.label for bucket in buckets] == [
        "Week of 2024-01-01",
        "Week of 2024-01-08",
        "Week of 2024-01-15",
    ]
    # The bucket boundary belongs to the later bucket.
    assert [bucket.revenue for bucket in buckets] == [Decimal(0), Decimal(15000), Decimal(0)]


def test_daily_breakdown_single_day() -> None:
    buckets = period_breakdown([], [], day("2024-01-01"), day("2024-01-01"), PeriodGranularity.DAILY)

    assert len(buckets) == 1
    assert buckets[0].label == "2024-01-01"
    assert buckets[0].start == buckets[0].end == day("2024-01-01")


def test_breakdown_respects_bucket_limit() -> None:
    buckets = period_breakdown([], [], day("2020-01-01"), day("2024-12-31"), PeriodGranularity.MONTHLY)

    assert len(buckets) == 24


def test_breakdown_with_inverted_window_is_empty() -> None:
    assert period_breakdown([], [], day("2024-02-01"), day("2024-01-01"), PeriodGranularity.DAILY) == []


def test_expenses_by_category() -> None:
    expenses = [
        make_expense(VEHICLE_ID, 500, "2024-01-10", ExpenseCategory.REPAIR),
        make_expense(VEHICLE_ID, 150, "2024-01-12", ExpenseCategory.REPAIR),
        make_expense(None, 80, "2024-01-20", ExpenseCategory.TRANSPORT),
        make_expense(VEHICLE_ID, 999, "2024-02-10", ExpenseCategory.SERVICE),
    ]

    totals = expenses_by_category(expenses, day("2024-01-01"), day("2024-01-31"))

    assert totals == {
        ExpenseCategory.REPAIR: Decimal(650),
        ExpenseCategory.TRANSPORT: Decimal(80),
    }


def test_naive_bounds_are_read_as_utc() -> None:
    transactions = [make_transaction(OUT, VEHICLE_ID, 15000, "2024-01-10")]
    expenses = [make_expense(None, 80, "2024-01-31", ExpenseCategory.TRANSPORT)]
    start, end = datetime(2024, 1, 1), datetime(2024, 1, 31)

    report = calculate_period_profit(transactions, expenses, start, end)
    buckets = period_breakdown(transactions, expenses, start, end, PeriodGranularity.WEEKLY)

    assert report.revenue == Decimal(15000)
    assert report.expenses == Decimal(80)
    assert [bucket.label for bucket in buckets][0] == "Week of 2024-01-01"
    assert sum((bucket.revenue for bucket in buckets), start=Decimal(0)) == Decimal(15000)
    assert buckets[-1].end == day("2024-01-31")
    assert expenses_by_category(expenses, start, end) == {ExpenseCategory.TRANSPORT: Decimal(80)}


def test_period_profit_is_idempotent() -> None:
    transactions = [
        make_transaction(IN, VEHICLE_ID, 10000, "2024-01-01"),
        make_transaction(OUT, VEHICLE_ID, 15000, "2024-01-15"),
    ]
    expenses = [make_expense(VEHICLE_ID, 500, "2024-01-10")]

    first = calculate_period_profit(transactions, expenses, day("2024-01-01"), END_OF_MARCH)
    second = calculate_period_profit(transactions, expenses, day("2024-01-01"), END_OF_MARCH)

    assert first == second
    assert period_breakdown(transactions, expenses, day("2024-01-01"), END_OF_MARCH) == period_breakdown(
        transactions, expenses, day("2024-01-01"), END_OF_MARCH
    )
