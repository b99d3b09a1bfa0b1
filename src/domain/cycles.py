from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field, computed_field

from .base_types import Direction, VehicleId
from .records import Expense, Transaction, as_utc

logger = logging.getLogger(__name__)


class Cycle(BaseModel):
    """One ownership span of a vehicle: acquisition and, once sold, disposal."""

    acquisition_transaction: Transaction
    sale_transaction: Transaction | None = None
    expenses: list[Expense] = Field(default_factory=list)
    profit: Decimal | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_complete(self) -> bool:
        return self.sale_transaction is not None

    @property
    def expenses_total(self) -> Decimal:
        return sum((expense.amount for expense in self.expenses), start=Decimal(0))

    @property
    def cost_basis(self) -> Decimal:
        return self.acquisition_transaction.total_price + self.expenses_total


class ProfitCalculation(BaseModel):
    vehicle_id: VehicleId
    cycles: list[Cycle] = Field(default_factory=list)
    total_profit: Decimal = Decimal(0)
    unrealized_value: Decimal = Decimal(0)


def attribute_expenses(expenses: Iterable[Expense], start: datetime, end: datetime) -> list[Expense]:
    """Expenses dated within ``[start, end]``, both ends inclusive."""
    start, end = as_utc(start), as_utc(end)
    return [expense for expense in expenses if start <= expense.date <= end]


def calculate_cycle_profit(acquisition: Transaction, sale: Transaction, expenses: Iterable[Expense]) -> Decimal:
    total_expenses = sum((expense.amount for expense in expenses), start=Decimal(0))
    return sale.total_price - acquisition.total_price - total_expenses


def build_cycles(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    *,
    now: datetime,
) -> list[Cycle]:
    """Partition one vehicle's transactions into ownership cycles.

    Transactions are ordered by date with a stable sort, so same-day records keep
    their input order. An OUT without an open cycle is dropped. An IN arriving
    while a cycle is still open closes that cycle as incomplete before opening a
    new one. Open cycles collect expenses up to ``now``.
    """
    now = as_utc(now)
    ordered = sorted(transactions, key=lambda t: t.date)
    vehicle_expenses = list(expenses)

    cycles: list[Cycle] = []
    open_acquisition: Transaction | None = None

    for transaction in ordered:
        if transaction.direction == Direction.IN:
            if open_acquisition is not None:
                logger.debug(
                    "Closing cycle opened by %s as incomplete: vehicle %s acquired again by %s",
                    open_acquisition.id,
                    transaction.vehicle_id,
                    transaction.id,
                )
                cycles.append(_incomplete_cycle(open_acquisition, vehicle_expenses, now=now))
            open_acquisition = transaction
            continue

        if open_acquisition is None:
            logger.debug("Dropping disposal %s of vehicle %s: no open acquisition", transaction.id, transaction.vehicle_id)
            continue

        cycle_expenses = attribute_expenses(vehicle_expenses, open_acquisition.date, transaction.date)
        cycles.append(
            Cycle(
                acquisition_transaction=open_acquisition,
                sale_transaction=transaction,
                expenses=cycle_expenses,
                profit=calculate_cycle_profit(open_acquisition, transaction, cycle_expenses),
            )
        )
        open_acquisition = None

    if open_acquisition is not None:
        cycles.append(_incomplete_cycle(open_acquisition, vehicle_expenses, now=now))

    return cycles


def calculate_vehicle_profit(
    vehicle_id: VehicleId,
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    *,
    now: datetime | None = None,
) -> ProfitCalculation:
    """Realized profit and unrealized cost basis for a single vehicle.

    ``transactions`` and ``expenses`` may cover the whole fleet; records of other
    vehicles and expenses without a vehicle are ignored.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    vehicle_transactions = [t for t in transactions if str(t.vehicle_id) == str(vehicle_id)]
    vehicle_expenses = [e for e in expenses if e.vehicle_id is not None and str(e.vehicle_id) == str(vehicle_id)]

    cycles = build_cycles(vehicle_transactions, vehicle_expenses, now=now)

    total_profit = sum(
        (cycle.profit for cycle in cycles if cycle.is_complete and cycle.profit is not None),
        start=Decimal(0),
    )
    unrealized_value = sum(
        (cycle.cost_basis for cycle in cycles if not cycle.is_complete),
        start=Decimal(0),
    )

    return ProfitCalculation(
        vehicle_id=vehicle_id,
        cycles=cycles,
        total_profit=total_profit,
        unrealized_value=unrealized_value,
    )


def _incomplete_cycle(acquisition: Transaction, expenses: list[Expense], *, now: datetime) -> Cycle:
    return Cycle(
        acquisition_transaction=acquisition,
        expenses=attribute_expenses(expenses, acquisition.date, now),
    )
