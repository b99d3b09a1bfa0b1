from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

from domain.base_types import Direction, ExpenseCategory
from domain.records import Expense, PriceComponent, Transaction

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = {"vehicle_id", "direction", "date", "total_price"}
EXPENSE_COLUMNS = {"category", "amount", "date"}


def load_transactions(csv_path: Path) -> list[Transaction]:
    """Load transactions exported from the record store.

    Required columns: vehicle_id,direction,date,total_price
    Optional: id,base_price,discount,counterparty_id,notes,taxes,fees
    ``taxes`` and ``fees`` hold ``name:amount`` pairs separated by ``;``.
    """
    rows = _read_rows(csv_path, TRANSACTION_COLUMNS)

    transactions: list[Transaction] = []
    for row in rows:
        total_price = _parse_decimal(row["total_price"], "total_price")
        fields: dict[str, object] = {
            "vehicle_id": row["vehicle_id"].strip(),
            "direction": Direction(row["direction"].strip().upper()),
            "date": _parse_timestamp(row["date"]),
            "total_price": total_price,
            "base_price": _parse_decimal(row.get("base_price"), "base_price", default=total_price),
            "discount": _parse_decimal(row.get("discount"), "discount", default=Decimal(0)),
            "taxes": _parse_components(row.get("taxes")),
            "fees": _parse_components(row.get("fees")),
            "counterparty_id": _optional(row.get("counterparty_id")),
            "notes": _optional(row.get("notes")),
        }
        if record_id := _optional(row.get("id")):
            fields["id"] = record_id
        transactions.append(Transaction.model_validate(fields))

    logger.info("Loaded %d transactions from %s", len(transactions), csv_path)
    return transactions


def load_expenses(csv_path: Path) -> list[Expense]:
    """Required columns: category,amount,date. Optional: id,vehicle_id,description,payee_id"""
    rows = _read_rows(csv_path, EXPENSE_COLUMNS)

    expenses: list[Expense] = []
    for row in rows:
        fields: dict[str, object] = {
            "vehicle_id": _optional(row.get("vehicle_id")),
            "category": ExpenseCategory(row["category"].strip().capitalize()),
            "description": (row.get("description") or "").strip(),
            "amount": _parse_decimal(row["amount"], "amount"),
            "date": _parse_timestamp(row["date"]),
            "payee_id": _optional(row.get("payee_id")),
        }
        if record_id := _optional(row.get("id")):
            fields["id"] = record_id
        expenses.append(Expense.model_validate(fields))

    logger.info("Loaded %d expenses from %s", len(expenses), csv_path)
    return expenses


def _read_rows(csv_path: Path, required: set[str]) -> list[dict[str, str]]:
    if not csv_path.exists():
        logger.info("CSV %s not found, nothing to load", csv_path)
        return []

    with csv_path.open(newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"CSV {csv_path} is empty or missing headers")

        missing = required - set(reader.fieldnames)
        if missing:
            raise ValueError(f"CSV {csv_path} missing required columns: {', '.join(sorted(missing))}")

        return list(reader)


def _parse_timestamp(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw.strip())
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _parse_decimal(raw: str | None, column: str, *, default: Decimal | None = None) -> Decimal:
    if raw is None or raw.strip() == "":
        if default is None:
            raise ValueError(f"Column {column} must not be empty")
        return default
    try:
        return Decimal(raw.strip())
    except InvalidOperation as err:
        raise ValueError(f"Column {column} is not a number: {raw!r}") from err


def _parse_components(raw: str | None) -> list[PriceComponent]:
    if raw is None or raw.strip() == "":
        return []

    components: list[PriceComponent] = []
    for chunk in raw.split(";"):
        if not chunk.strip():
            continue
        name, sep, amount = chunk.rpartition(":")
        if not sep or not name.strip():
            raise ValueError(f"Price component must be name:amount, got {chunk!r}")
        components.append(PriceComponent(name=name.strip(), amount=_parse_decimal(amount, name.strip())))
    return components


def _optional(raw: str | None) -> str | None:
    if raw is None:
        return None
    value = raw.strip()
    return value or None
