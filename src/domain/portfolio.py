from __future__ import annotations

from concurrent.futures import Executor
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from .base_types import VehicleId
from .cycles import ProfitCalculation, calculate_vehicle_profit
from .records import Expense, Transaction, as_utc


class PortfolioProfit(BaseModel):
    total_profit: Decimal = Decimal(0)
    total_unrealized_value: Decimal = Decimal(0)
    vehicle_profits: list[ProfitCalculation] = Field(default_factory=list)


def calculate_portfolio_profit(
    vehicle_ids: Iterable[VehicleId],
    transactions: Sequence[Transaction],
    expenses: Sequence[Expense],
    *,
    now: datetime | None = None,
    executor: Executor | None = None,
) -> PortfolioProfit:
    """Run the cycle engine per vehicle and total the results.

    Every vehicle is evaluated against the same ``now``. Vehicles share no state,
    so an ``executor`` may spread them across workers; results keep the order of
    ``vehicle_ids`` either way.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    per_vehicle = partial(calculate_vehicle_profit, transactions=transactions, expenses=expenses, now=now)

    if executor is None:
        vehicle_profits = [per_vehicle(vehicle_id) for vehicle_id in vehicle_ids]
    else:
        vehicle_profits = list(executor.map(per_vehicle, vehicle_ids))

    return PortfolioProfit(
        total_profit=sum((vp.total_profit for vp in vehicle_profits), start=Decimal(0)),
        total_unrealized_value=sum((vp.unrealized_value for vp in vehicle_profits), start=Decimal(0)),
        vehicle_profits=vehicle_profits,
    )
