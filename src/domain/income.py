from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from .base_types import PersonId, TransactionId
from .performance import VehiclePerformance, cycle_performance
from .portfolio import PortfolioProfit
from .records import as_utc


class SaleIncome(VehiclePerformance):
    transaction_id: TransactionId
    counterparty_id: PersonId | None = None


class IncomeReport(BaseModel):
    start: datetime | None = None
    end: datetime | None = None
    counterparty_id: PersonId | None = None
    total_sales: int = 0
    total_revenue: Decimal = Decimal(0)
    total_profit: Decimal = Decimal(0)
    average_profit: Decimal = Decimal(0)
    average_profit_margin: Decimal = Decimal(0)
    sales: list[SaleIncome] = Field(default_factory=list)


def calculate_sales_income(
    portfolio: PortfolioProfit,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    counterparty_id: PersonId | str | None = None,
) -> IncomeReport:
    """Matched income of completed sales.

    Each sale is reported with the profit of its own cycle. ``start`` and
    ``end`` bound the sale date inclusively and may be left open;
    ``counterparty_id`` keeps only sales to that buyer. Sales are ordered by
    sale date.
    """
    start = as_utc(start) if start is not None else None
    end = as_utc(end) if end is not None else None
    buyer = str(counterparty_id) if counterparty_id is not None else None

    sales: list[SaleIncome] = []
    for vehicle_profit in portfolio.vehicle_profits:
        for cycle in vehicle_profit.cycles:
            sale = cycle.sale_transaction
            if sale is None:
                continue
            if start is not None and sale.date < start:
                continue
            if end is not None and sale.date > end:
                continue
            if buyer is not None and (sale.counterparty_id is None or str(sale.counterparty_id) != buyer):
                continue
            performance = cycle_performance(vehicle_profit.vehicle_id, cycle)
            sales.append(
                SaleIncome(
                    **performance.model_dump(),
                    transaction_id=sale.id,
                    counterparty_id=sale.counterparty_id,
                )
            )
    sales.sort(key=lambda s: s.sale_date)

    total_revenue = sum((s.sale_price for s in sales), start=Decimal(0))
    total_profit = sum((s.gross_profit for s in sales), start=Decimal(0))
    average_margin = Decimal(0)
    if total_revenue > 0:
        average_margin = (total_profit / total_revenue * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return IncomeReport(
        start=start,
        end=end,
        counterparty_id=buyer,
        total_sales=len(sales),
        total_revenue=total_revenue,
        total_profit=total_profit,
        average_profit=total_profit / len(sales) if sales else Decimal(0),
        average_profit_margin=average_margin,
        sales=sales,
    )
