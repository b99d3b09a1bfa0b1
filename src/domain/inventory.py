from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field

from .base_types import Direction, VehicleId
from .records import Expense, Transaction, as_utc


@dataclass
class _HoldingState:
    acquisition_cost: Decimal
    expenses: Decimal
    is_owned: bool


class InventoryVehicleValue(BaseModel):
    vehicle_id: VehicleId
    acquisition_cost: Decimal
    expenses: Decimal
    total_value: Decimal


class InventoryValueReport(BaseModel):
    as_of: datetime
    total_value: Decimal = Decimal(0)
    vehicle_count: int = 0
    details: list[InventoryVehicleValue] = Field(default_factory=list)


def calculate_inventory_value(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    *,
    as_of: datetime | None = None,
) -> InventoryValueReport:
    """Book value of every vehicle currently owned.

    A re-acquisition resets the vehicle's accumulated expenses. Expenses are then
    added for every owned vehicle regardless of their date, which differs from
    the date-bounded attribution used for ownership cycles. ``as_of`` is only
    recorded on the report.
    """
    as_of = as_utc(as_of) if as_of is not None else datetime.now(timezone.utc)

    holdings: dict[str, _HoldingState] = {}
    for transaction in sorted(transactions, key=lambda t: t.date):
        vehicle_id = str(transaction.vehicle_id)
        if transaction.direction == Direction.IN:
            holdings[vehicle_id] = _HoldingState(
                acquisition_cost=transaction.total_price,
                expenses=Decimal(0),
                is_owned=True,
            )
        elif (state := holdings.get(vehicle_id)) is not None:
            state.is_owned = False

    for expense in expenses:
        if expense.vehicle_id is None:
            continue
        state = holdings.get(str(expense.vehicle_id))
        if state is not None and state.is_owned:
            state.expenses += expense.amount

    details = [
        InventoryVehicleValue(
            vehicle_id=VehicleId(vehicle_id),
            acquisition_cost=state.acquisition_cost,
            expenses=state.expenses,
            total_value=state.acquisition_cost + state.expenses,
        )
        for vehicle_id, state in holdings.items()
        if state.is_owned
    ]

    return InventoryValueReport(
        as_of=as_of,
        total_value=sum((detail.total_value for detail in details), start=Decimal(0)),
        vehicle_count=len(details),
        details=details,
    )
