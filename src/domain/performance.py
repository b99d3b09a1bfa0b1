from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from pydantic import BaseModel, Field

from .base_types import VehicleId
from .cycles import Cycle
from .portfolio import PortfolioProfit

SECONDS_PER_DAY = 24 * 60 * 60


class PerformanceSortKey(StrEnum):
    PROFIT = "profit"
    MARGIN = "margin"
    REVENUE = "revenue"
    SPEED = "speed"


class VehiclePerformance(BaseModel):
    vehicle_id: VehicleId
    purchase_price: Decimal
    sale_price: Decimal
    total_expenses: Decimal
    gross_profit: Decimal
    profit_margin: Decimal
    purchase_date: datetime
    sale_date: datetime
    days_to_sell: int


class PerformanceSummary(BaseModel):
    sort_by: PerformanceSortKey
    total_vehicles: int = 0
    total_revenue: Decimal = Decimal(0)
    total_profit: Decimal = Decimal(0)
    average_profit: Decimal = Decimal(0)
    average_margin: Decimal = Decimal(0)
    average_days_to_sell: Decimal = Decimal(0)
    top_performers: list[VehiclePerformance] = Field(default_factory=list)


def rank_top_performers(
    portfolio: PortfolioProfit,
    *,
    sort_by: PerformanceSortKey = PerformanceSortKey.PROFIT,
    limit: int = 10,
) -> PerformanceSummary:
    """Rank every completed sale in the portfolio.

    ``speed`` ranks by fewest days to sell and leaves out same-day turnarounds.
    Summary figures cover all completed sales, not only the returned top ones.
    """
    performances = [
        cycle_performance(vehicle_profit.vehicle_id, cycle)
        for vehicle_profit in portfolio.vehicle_profits
        for cycle in vehicle_profit.cycles
        if cycle.is_complete
    ]

    if sort_by == PerformanceSortKey.SPEED:
        ranked = sorted((p for p in performances if p.days_to_sell > 0), key=lambda p: p.days_to_sell)
    elif sort_by == PerformanceSortKey.MARGIN:
        ranked = sorted(performances, key=lambda p: p.profit_margin, reverse=True)
    elif sort_by == PerformanceSortKey.REVENUE:
        ranked = sorted(performances, key=lambda p: p.sale_price, reverse=True)
    else:
        ranked = sorted(performances, key=lambda p: p.gross_profit, reverse=True)

    count = len(performances)
    total_profit = sum((p.gross_profit for p in performances), start=Decimal(0))
    total_margin = sum((p.profit_margin for p in performances), start=Decimal(0))
    timed = [p.days_to_sell for p in performances if p.days_to_sell > 0]

    return PerformanceSummary(
        sort_by=sort_by,
        total_vehicles=count,
        total_revenue=sum((p.sale_price for p in performances), start=Decimal(0)),
        total_profit=total_profit,
        average_profit=total_profit / count if count else Decimal(0),
        average_margin=total_margin / count if count else Decimal(0),
        average_days_to_sell=Decimal(sum(timed)) / len(timed) if timed else Decimal(0),
        top_performers=ranked[:limit],
    )


def cycle_performance(vehicle_id: VehicleId, cycle: Cycle) -> VehiclePerformance:
    sale = cycle.sale_transaction
    if sale is None or cycle.profit is None:
        raise ValueError(f"Cycle opened by {cycle.acquisition_transaction.id} is not complete")

    purchase = cycle.acquisition_transaction
    margin = Decimal(0)
    if sale.total_price > 0:
        margin = (cycle.profit / sale.total_price * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return VehiclePerformance(
        vehicle_id=vehicle_id,
        purchase_price=purchase.total_price,
        sale_price=sale.total_price,
        total_expenses=cycle.expenses_total,
        gross_profit=cycle.profit,
        profit_margin=margin,
        purchase_date=purchase.date,
        sale_date=sale.date,
        days_to_sell=elapsed_days(purchase.date, sale.date),
    )


def elapsed_days(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``; a partial day counts as one."""
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)
