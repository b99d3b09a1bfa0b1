from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

from domain.base_types import Direction, ExpenseCategory, PaymentMethod, VehicleId
from domain.records import Expense, Payment, PriceComponent, Transaction

_COUNTER = count()


def day(raw: str) -> datetime:
    """UTC midnight for an ISO date, e.g. ``day("2024-01-15")``."""
    return datetime.fromisoformat(raw).replace(tzinfo=timezone.utc)


def make_transaction(
    direction: Direction,
    vehicle_id: VehicleId | str,
    total_price: Decimal | int | str,
    date: datetime | str,
    *,
    with_breakdown: bool = False,
) -> Transaction:
    """Transaction with a generated id; ``with_breakdown`` adds a consistent 10% VAT line and a payment."""
    total = Decimal(total_price)
    when = day(date) if isinstance(date, str) else date
    taxes: list[PriceComponent] = []
    payments: list[Payment] = []
    base_price = total
    if with_breakdown:
        tax = total * Decimal("0.1")
        base_price = total - tax
        taxes = [PriceComponent(name="VAT", amount=tax, percentage=Decimal(10))]
        payments = [Payment(method=PaymentMethod.CASH, amount=total, date=when)]

    return Transaction(
        id=f"txn-{next(_COUNTER)}",
        vehicle_id=VehicleId(str(vehicle_id)),
        direction=direction,
        date=when,
        base_price=base_price,
        taxes=taxes,
        total_price=total,
        counterparty_id="person-1",
        payments=payments,
    )


def make_expense(
    vehicle_id: VehicleId | str | None,
    amount: Decimal | int | str,
    date: datetime | str,
    category: ExpenseCategory = ExpenseCategory.REPAIR,
) -> Expense:
    return Expense(
        id=f"exp-{next(_COUNTER)}",
        vehicle_id=VehicleId(str(vehicle_id)) if vehicle_id is not None else None,
        category=category,
        description="Test expense",
        amount=Decimal(amount),
        date=day(date) if isinstance(date, str) else date,
    )
