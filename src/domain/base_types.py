from __future__ import annotations

from enum import StrEnum
from typing import NewType

VehicleId = NewType("VehicleId", str)
TransactionId = NewType("TransactionId", str)
ExpenseId = NewType("ExpenseId", str)
PersonId = NewType("PersonId", str)


class Direction(StrEnum):
    IN = "IN"
    OUT = "OUT"


class ExpenseCategory(StrEnum):
    REPAIR = "Repair"
    SERVICE = "Service"
    TRANSPORT = "Transport"
    COMMISSION = "Commission"
    OTHER = "Other"


class PaymentMethod(StrEnum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CHECK = "Check"
    CARD = "Card"
    OTHER = "Other"
