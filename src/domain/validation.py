"""Semantic checks on input records, reported as values.

The calculators accept anything that parses into a record. Callers that want to
reject suspicious data run ``validate_records`` first and decide what to do
with the returned issues.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, Field

from .base_types import Direction
from .records import Expense, Transaction


class RecordKind(StrEnum):
    TRANSACTION = "TRANSACTION"
    EXPENSE = "EXPENSE"


class ValidationIssue(BaseModel):
    record_kind: RecordKind
    record_id: str
    field: str
    message: str


class ValidationResult(BaseModel):
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


def validate_records(transactions: Iterable[Transaction], expenses: Iterable[Expense]) -> ValidationResult:
    transactions = list(transactions)
    issues: list[ValidationIssue] = []

    for transaction in transactions:
        issues.extend(_transaction_issues(transaction))
    for expense in expenses:
        if expense.amount < 0:
            issues.append(_issue(RecordKind.EXPENSE, expense.id, "amount", f"must be >= 0, got {expense.amount}"))
    issues.extend(_chronology_issues(transactions))

    return ValidationResult(issues=issues)


def _transaction_issues(transaction: Transaction) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for field_name in ("base_price", "discount", "total_price"):
        value: Decimal = getattr(transaction, field_name)
        if value < 0:
            issues.append(_issue(RecordKind.TRANSACTION, transaction.id, field_name, f"must be >= 0, got {value}"))

    for field_name, components in (("taxes", transaction.taxes), ("fees", transaction.fees)):
        for component in components:
            if component.amount < 0:
                issues.append(
                    _issue(
                        RecordKind.TRANSACTION,
                        transaction.id,
                        field_name,
                        f"{component.name} must be >= 0, got {component.amount}",
                    )
                )

    for payment in transaction.payments:
        if payment.amount < 0:
            issues.append(
                _issue(RecordKind.TRANSACTION, transaction.id, "payments", f"must be >= 0, got {payment.amount}")
            )

    expected = transaction.expected_total()
    if transaction.total_price != expected:
        issues.append(
            _issue(
                RecordKind.TRANSACTION,
                transaction.id,
                "total_price",
                f"expected {expected} from base price, taxes, fees and discount, got {transaction.total_price}",
            )
        )
    return issues


def _chronology_issues(transactions: list[Transaction]) -> list[ValidationIssue]:
    by_vehicle: dict[str, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        by_vehicle[str(transaction.vehicle_id)].append(transaction)

    issues: list[ValidationIssue] = []
    for vehicle_id, vehicle_transactions in by_vehicle.items():
        owned = False
        for transaction in sorted(vehicle_transactions, key=lambda t: t.date):
            if transaction.direction == Direction.IN and owned:
                issues.append(
                    _issue(
                        RecordKind.TRANSACTION,
                        transaction.id,
                        "direction",
                        f"vehicle {vehicle_id} acquired again without a disposal in between",
                    )
                )
            elif transaction.direction == Direction.OUT and not owned:
                issues.append(
                    _issue(
                        RecordKind.TRANSACTION,
                        transaction.id,
                        "direction",
                        f"vehicle {vehicle_id} disposed of without a preceding acquisition",
                    )
                )
            owned = transaction.direction == Direction.IN
    return issues


def _issue(kind: RecordKind, record_id: str, field: str, message: str) -> ValidationIssue:
    return ValidationIssue(record_kind=kind, record_id=str(record_id), field=field, message=message)
