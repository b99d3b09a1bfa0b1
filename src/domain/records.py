from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base_types import (
    Direction,
    ExpenseCategory,
    ExpenseId,
    PaymentMethod,
    PersonId,
    TransactionId,
    VehicleId,
)


def _new_id() -> str:
    return str(uuid4())


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PriceComponent(BaseModel):
    """A tax or fee line on a transaction, already computed by the caller."""

    model_config = ConfigDict(frozen=True)

    name: str
    amount: Decimal
    percentage: Decimal | None = None


class Payment(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod
    amount: Decimal
    date: datetime
    reference: str | None = None

    @field_validator("date")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        return as_utc(value)


class Transaction(BaseModel):
    """Acquisition (IN) or disposal (OUT) of a vehicle.

    ``total_price`` is authoritative. It is normally
    ``base_price + sum(taxes) + sum(fees) - discount`` but the engine never
    recomputes it; see ``expected_total`` for the validation layer.
    """

    model_config = ConfigDict(frozen=True)

    id: TransactionId = TransactionId(Field(default_factory=_new_id))
    vehicle_id: VehicleId
    direction: Direction
    date: datetime
    base_price: Decimal = Decimal(0)
    taxes: list[PriceComponent] = Field(default_factory=list)
    fees: list[PriceComponent] = Field(default_factory=list)
    discount: Decimal = Decimal(0)
    total_price: Decimal
    counterparty_id: PersonId | None = None
    payments: list[Payment] = Field(default_factory=list)
    notes: str | None = None

    @field_validator("date")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        # Naive timestamps are stored as UTC.
        return as_utc(value)

    def expected_total(self) -> Decimal:
        taxes = sum((tax.amount for tax in self.taxes), start=Decimal(0))
        fees = sum((fee.amount for fee in self.fees), start=Decimal(0))
        return self.base_price + taxes + fees - self.discount


class Expense(BaseModel):
    """Money spent on a vehicle, or on the fleet when ``vehicle_id`` is None."""

    model_config = ConfigDict(frozen=True)

    id: ExpenseId = ExpenseId(Field(default_factory=_new_id))
    vehicle_id: VehicleId | None = None
    category: ExpenseCategory = ExpenseCategory.OTHER
    description: str = ""
    amount: Decimal
    date: datetime
    payee_id: PersonId | None = None

    @field_validator("date")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        return as_utc(value)
