from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

from domain.base_types import ExpenseCategory
from domain.history import VehicleHistory
from domain.income import IncomeReport
from domain.inventory import InventoryValueReport
from domain.performance import PerformanceSummary
from domain.period import PeriodBucket, PeriodProfitReport
from domain.portfolio import PortfolioProfit
from domain.validation import ValidationResult

from .formatting import format_currency, format_date, format_decimal


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """First column left-aligned, the rest right-aligned."""
    widths = [max(len(header), max((len(row[idx]) for row in rows), default=0)) for idx, header in enumerate(headers)]

    def _line(cells: Sequence[str]) -> str:
        parts = [f"{cells[0]:<{widths[0]}}"]
        parts.extend(f"{cell:>{width}}" for cell, width in zip(cells[1:], widths[1:]))
        return " ".join(parts)

    header = _line(headers)
    lines = [header, "-" * len(header)]
    lines.extend(_line(row) for row in rows)
    lines.append("-" * len(header))
    return "\n".join(lines)


def render_portfolio_profit(portfolio: PortfolioProfit, *, currency: str = "EUR") -> None:
    print(f"Profit per vehicle ({currency}):")
    if not portfolio.vehicle_profits:
        print("  (no vehicles)")
        return

    rows: list[tuple[str, str, str, str, str]] = []
    for vehicle_profit in portfolio.vehicle_profits:
        complete = sum(1 for cycle in vehicle_profit.cycles if cycle.is_complete)
        rows.append(
            (
                str(vehicle_profit.vehicle_id),
                str(len(vehicle_profit.cycles)),
                str(complete),
                format_currency(vehicle_profit.total_profit),
                format_currency(vehicle_profit.unrealized_value),
            )
        )
    rows.append(
        (
            "Total",
            "",
            "",
            format_currency(portfolio.total_profit),
            format_currency(portfolio.total_unrealized_value),
        )
    )
    print(render_table(("Vehicle", "Cycles", "Sold", "Profit", "Unrealized"), rows))


def render_period_report(
    report: PeriodProfitReport,
    *,
    start: datetime,
    end: datetime,
    buckets: Sequence[PeriodBucket] = (),
    by_category: dict[ExpenseCategory, Decimal] | None = None,
    currency: str = "EUR",
) -> None:
    print(f"P&L {format_date(start)} → {format_date(end)} ({currency}):")
    print(f"  Revenue:     {format_currency(report.revenue)}")
    print(f"  Costs:       {format_currency(report.costs)}")
    print(f"  Expenses:    {format_currency(report.expenses)}")
    print(f"  Net profit:  {format_currency(report.net_profit)}")
    print(f"  Purchases:   {report.transaction_count.in_}")
    print(f"  Sales:       {report.transaction_count.out}")

    if buckets:
        rows = [
            (
                bucket.label,
                format_currency(bucket.revenue),
                format_currency(bucket.costs),
                format_currency(bucket.expenses),
                format_currency(bucket.net_profit),
                f"{bucket.transaction_count.in_}/{bucket.transaction_count.out}",
            )
            for bucket in buckets
        ]
        print(render_table(("Period", "Revenue", "Costs", "Expenses", "Net profit", "In/Out"), rows))

    if by_category:
        print("Expenses by category:")
        rows = [(category.value, format_currency(amount)) for category, amount in sorted(by_category.items())]
        print(render_table(("Category", "Amount"), rows))


def render_inventory_value(report: InventoryValueReport, *, currency: str = "EUR") -> None:
    print(f"Inventory as of {format_date(report.as_of)} ({currency}):")
    if not report.details:
        print("  (empty)")
        return

    rows = [
        (
            str(detail.vehicle_id),
            format_currency(detail.acquisition_cost),
            format_currency(detail.expenses),
            format_currency(detail.total_value),
        )
        for detail in report.details
    ]
    rows.append((f"Total ({report.vehicle_count})", "", "", format_currency(report.total_value)))
    print(render_table(("Vehicle", "Acquisition", "Expenses", "Value"), rows))


def render_top_performers(summary: PerformanceSummary, *, currency: str = "EUR") -> None:
    print(f"Top performers by {summary.sort_by} ({currency}):")
    if not summary.top_performers:
        print("  (no completed sales)")
        return

    rows = [
        (
            str(item.vehicle_id),
            format_currency(item.purchase_price),
            format_currency(item.sale_price),
            format_currency(item.total_expenses),
            format_currency(item.gross_profit),
            f"{format_decimal(item.profit_margin)}%",
            str(item.days_to_sell),
        )
        for item in summary.top_performers
    ]
    print(render_table(("Vehicle", "Purchase", "Sale", "Expenses", "Profit", "Margin", "Days"), rows))
    print(
        f"  Sold vehicles: {summary.total_vehicles}  "
        f"average profit: {format_currency(summary.average_profit)}  "
        f"average days to sell: {format_decimal(summary.average_days_to_sell.quantize(Decimal('0.1')))}"
    )


def render_validation(result: ValidationResult) -> None:
    if result.ok:
        print("No issues found.")
        return

    print(f"{len(result.issues)} issue(s):")
    for issue in result.issues:
        print(f"  {issue.record_kind.value} {issue.record_id} {issue.field}: {issue.message}")


def render_sales_income(report: IncomeReport, *, currency: str = "EUR") -> None:
    window = "all sales"
    if report.start is not None or report.end is not None:
        first = format_date(report.start) if report.start is not None else "…"
        last = format_date(report.end) if report.end is not None else "…"
        window = f"{first} → {last}"
    buyer = f" to {report.counterparty_id}" if report.counterparty_id is not None else ""
    print(f"Income {window}{buyer} ({currency}):")
    if not report.sales:
        print("  (no completed sales)")
        return

    rows = [
        (
            str(sale.vehicle_id),
            format_date(sale.sale_date),
            sale.counterparty_id or "",
            format_currency(sale.sale_price),
            format_currency(sale.gross_profit),
            f"{format_decimal(sale.profit_margin)}%",
        )
        for sale in report.sales
    ]
    rows.append(
        (
            f"Total ({report.total_sales})",
            "",
            "",
            format_currency(report.total_revenue),
            format_currency(report.total_profit),
            f"{format_decimal(report.average_profit_margin)}%",
        )
    )
    print(render_table(("Vehicle", "Sold", "Buyer", "Revenue", "Profit", "Margin"), rows))
    print(f"  Average profit: {format_currency(report.average_profit)}")


def render_vehicle_history(history: VehicleHistory, *, currency: str = "EUR") -> None:
    print(f"History of {history.vehicle_id} ({currency}):")
    print(f"  Cycles:           {history.total_cycles} ({history.completed_cycles} sold)")
    print(f"  Total profit:     {format_currency(history.total_profit)}")
    print(f"  Average profit:   {format_currency(history.average_profit)}")
    print(f"  Average duration: {history.average_duration_days} days")
    if history.current_acquisition is not None:
        acquisition = history.current_acquisition
        print(
            f"  Owned since {format_date(acquisition.date)} "
            f"for {format_currency(acquisition.total_price)}"
        )
    elif history.has_incomplete_cycle:
        print("  Has an unsold cycle")
