from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Query, Session

from db import models
from domain.base_types import Direction, ExpenseCategory, ExpenseId, PaymentMethod, PersonId, TransactionId, VehicleId
from domain.records import Expense, Payment, PriceComponent, Transaction

logger = logging.getLogger(__name__)

TAX_KIND = "TAX"
FEE_KIND = "FEE"


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TransactionRepository:
    """Stores transactions; soft-deleted rows are never returned."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, transactions: list[Transaction]) -> list[Transaction]:
        orm_transactions: list[models.TransactionOrm] = []
        for transaction in transactions:
            orm_transaction = models.TransactionOrm(
                id=transaction.id,
                vehicle_id=transaction.vehicle_id,
                direction=transaction.direction.value,
                date=_to_utc(transaction.date),
                base_price=transaction.base_price,
                discount=transaction.discount,
                total_price=transaction.total_price,
                counterparty_id=transaction.counterparty_id,
                notes=transaction.notes,
            )
            components = [(TAX_KIND, tax) for tax in transaction.taxes] + [(FEE_KIND, fee) for fee in transaction.fees]
            orm_transaction.price_components = [
                models.PriceComponentOrm(
                    kind=kind,
                    position=position,
                    name=component.name,
                    amount=component.amount,
                    percentage=component.percentage,
                )
                for position, (kind, component) in enumerate(components)
            ]
            orm_transaction.payments = [
                models.PaymentOrm(
                    position=position,
                    method=payment.method.value,
                    amount=payment.amount,
                    date=_to_utc(payment.date),
                    reference=payment.reference,
                )
                for position, payment in enumerate(transaction.payments)
            ]
            orm_transactions.append(orm_transaction)

        self._session.add_all(orm_transactions)
        self._session.commit()
        logger.info("Stored %d transactions", len(orm_transactions))
        return transactions

    def get(self, transaction_id: TransactionId) -> Transaction | None:
        orm_transaction = self._session.get(models.TransactionOrm, transaction_id)
        if orm_transaction is None or orm_transaction.deleted_at is not None:
            return None
        return self._to_domain(orm_transaction)

    def list(
        self,
        *,
        vehicle_id: VehicleId | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        query = self._active()
        if vehicle_id is not None:
            query = query.filter(models.TransactionOrm.vehicle_id == vehicle_id)
        if start is not None:
            query = query.filter(models.TransactionOrm.date >= _to_utc(start))
        if end is not None:
            query = query.filter(models.TransactionOrm.date <= _to_utc(end))
        orm_transactions = query.order_by(models.TransactionOrm.date.asc()).all()
        return [self._to_domain(transaction) for transaction in orm_transactions]

    def vehicle_ids(self) -> list[VehicleId]:
        rows = (
            self._session.query(models.TransactionOrm.vehicle_id)
            .filter(models.TransactionOrm.deleted_at.is_(None))
            .distinct()
            .order_by(models.TransactionOrm.vehicle_id.asc())
            .all()
        )
        return [VehicleId(row[0]) for row in rows]

    def soft_delete(self, transaction_id: TransactionId, *, at: datetime | None = None) -> bool:
        orm_transaction = self._session.get(models.TransactionOrm, transaction_id)
        if orm_transaction is None or orm_transaction.deleted_at is not None:
            return False
        orm_transaction.deleted_at = _to_utc(at or datetime.now(timezone.utc))
        self._session.commit()
        return True

    def _active(self) -> Query[models.TransactionOrm]:
        return self._session.query(models.TransactionOrm).filter(models.TransactionOrm.deleted_at.is_(None))

    @staticmethod
    def _to_domain(orm_transaction: models.TransactionOrm) -> Transaction:
        taxes: list[PriceComponent] = []
        fees: list[PriceComponent] = []
        for component in orm_transaction.price_components:
            target = taxes if component.kind == TAX_KIND else fees
            target.append(
                PriceComponent(name=component.name, amount=component.amount, percentage=component.percentage)
            )

        payments = [
            Payment(
                method=PaymentMethod(payment.method),
                amount=payment.amount,
                date=_to_utc(payment.date),
                reference=payment.reference,
            )
            for payment in orm_transaction.payments
        ]
        return Transaction(
            id=TransactionId(orm_transaction.id),
            vehicle_id=VehicleId(orm_transaction.vehicle_id),
            direction=Direction(orm_transaction.direction),
            date=_to_utc(orm_transaction.date),
            base_price=orm_transaction.base_price,
            taxes=taxes,
            fees=fees,
            discount=orm_transaction.discount,
            total_price=orm_transaction.total_price,
            counterparty_id=PersonId(orm_transaction.counterparty_id) if orm_transaction.counterparty_id else None,
            payments=payments,
            notes=orm_transaction.notes,
        )


class ExpenseRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, expenses: list[Expense]) -> list[Expense]:
        orm_expenses = [
            models.ExpenseOrm(
                id=expense.id,
                vehicle_id=expense.vehicle_id,
                category=expense.category.value,
                description=expense.description,
                amount=expense.amount,
                date=_to_utc(expense.date),
                payee_id=expense.payee_id,
            )
            for expense in expenses
        ]
        self._session.add_all(orm_expenses)
        self._session.commit()
        logger.info("Stored %d expenses", len(orm_expenses))
        return expenses

    def get(self, expense_id: ExpenseId) -> Expense | None:
        orm_expense = self._session.get(models.ExpenseOrm, expense_id)
        if orm_expense is None or orm_expense.deleted_at is not None:
            return None
        return self._to_domain(orm_expense)

    def list(
        self,
        *,
        vehicle_id: VehicleId | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Expense]:
        query = self._session.query(models.ExpenseOrm).filter(models.ExpenseOrm.deleted_at.is_(None))
        if vehicle_id is not None:
            query = query.filter(models.ExpenseOrm.vehicle_id == vehicle_id)
        if start is not None:
            query = query.filter(models.ExpenseOrm.date >= _to_utc(start))
        if end is not None:
            query = query.filter(models.ExpenseOrm.date <= _to_utc(end))
        orm_expenses = query.order_by(models.ExpenseOrm.date.asc()).all()
        return [self._to_domain(expense) for expense in orm_expenses]

    def soft_delete(self, expense_id: ExpenseId, *, at: datetime | None = None) -> bool:
        orm_expense = self._session.get(models.ExpenseOrm, expense_id)
        if orm_expense is None or orm_expense.deleted_at is not None:
            return False
        orm_expense.deleted_at = _to_utc(at or datetime.now(timezone.utc))
        self._session.commit()
        return True

    @staticmethod
    def _to_domain(orm_expense: models.ExpenseOrm) -> Expense:
        return Expense(
            id=ExpenseId(orm_expense.id),
            vehicle_id=VehicleId(orm_expense.vehicle_id) if orm_expense.vehicle_id else None,
            category=ExpenseCategory(orm_expense.category),
            description=orm_expense.description,
            amount=orm_expense.amount,
            date=_to_utc(orm_expense.date),
            payee_id=PersonId(orm_expense.payee_id) if orm_expense.payee_id else None,
        )
