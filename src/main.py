from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Sequence

from sqlalchemy.orm import Session

from config import config
from db.db import init_db
from db.repositories import ExpenseRepository, TransactionRepository
from domain.base_types import PersonId, VehicleId
from domain.cycles import calculate_vehicle_profit
from domain.history import summarize_vehicle_history
from domain.income import calculate_sales_income
from domain.inventory import calculate_inventory_value
from domain.performance import PerformanceSortKey, rank_top_performers
from domain.period import PeriodGranularity, calculate_period_profit, expenses_by_category, period_breakdown
from domain.portfolio import calculate_portfolio_profit
from domain.validation import validate_records
from importers.csv_records import load_expenses, load_transactions
from utils.reports import (
    render_inventory_value,
    render_period_report,
    render_portfolio_profit,
    render_sales_income,
    render_top_performers,
    render_vehicle_history,
    render_validation,
)

logger = logging.getLogger(__name__)


def run_import(session: Session, transactions_csv: Path | None, expenses_csv: Path | None) -> int:
    transactions = load_transactions(transactions_csv) if transactions_csv else []
    expenses = load_expenses(expenses_csv) if expenses_csv else []

    result = validate_records(transactions, expenses)
    for issue in result.issues:
        logger.warning("%s %s %s: %s", issue.record_kind, issue.record_id, issue.field, issue.message)

    TransactionRepository(session).create_many(transactions)
    ExpenseRepository(session).create_many(expenses)
    print(f"Imported {len(transactions)} transactions and {len(expenses)} expenses")
    return 0


def run_vehicles(session: Session, vehicle_id: str | None, *, currency: str) -> int:
    transaction_repository = TransactionRepository(session)
    vehicle_ids = [VehicleId(vehicle_id)] if vehicle_id else transaction_repository.vehicle_ids()
    portfolio = calculate_portfolio_profit(
        vehicle_ids,
        transaction_repository.list(),
        ExpenseRepository(session).list(),
    )
    render_portfolio_profit(portfolio, currency=currency)
    return 0


def run_pnl(
    session: Session,
    start: datetime,
    end: datetime,
    granularity: PeriodGranularity,
    *,
    currency: str,
) -> int:
    transactions = TransactionRepository(session).list(start=start, end=end)
    expenses = ExpenseRepository(session).list(start=start, end=end)

    render_period_report(
        calculate_period_profit(transactions, expenses, start, end),
        start=start,
        end=end,
        buckets=period_breakdown(transactions, expenses, start, end, granularity),
        by_category=expenses_by_category(expenses, start, end),
        currency=currency,
    )
    return 0


def run_inventory(session: Session, *, currency: str) -> int:
    report = calculate_inventory_value(TransactionRepository(session).list(), ExpenseRepository(session).list())
    render_inventory_value(report, currency=currency)
    return 0


def run_top(session: Session, sort_by: PerformanceSortKey, limit: int, *, currency: str) -> int:
    transaction_repository = TransactionRepository(session)
    portfolio = calculate_portfolio_profit(
        transaction_repository.vehicle_ids(),
        transaction_repository.list(),
        ExpenseRepository(session).list(),
    )
    render_top_performers(rank_top_performers(portfolio, sort_by=sort_by, limit=limit), currency=currency)
    return 0


def run_income(
    session: Session,
    start: datetime | None,
    end: datetime | None,
    customer_id: str | None,
    *,
    currency: str,
) -> int:
    transaction_repository = TransactionRepository(session)
    portfolio = calculate_portfolio_profit(
        transaction_repository.vehicle_ids(),
        transaction_repository.list(),
        ExpenseRepository(session).list(),
    )
    report = calculate_sales_income(
        portfolio,
        start=start,
        end=end,
        counterparty_id=PersonId(customer_id) if customer_id else None,
    )
    render_sales_income(report, currency=currency)
    return 0


def run_history(session: Session, vehicle_id: str, *, currency: str) -> int:
    vid = VehicleId(vehicle_id)
    calculation = calculate_vehicle_profit(
        vid,
        TransactionRepository(session).list(vehicle_id=vid),
        ExpenseRepository(session).list(vehicle_id=vid),
    )
    render_vehicle_history(summarize_vehicle_history(calculation), currency=currency)
    return 0


def run_validate(session: Session) -> int:
    result = validate_records(TransactionRepository(session).list(), ExpenseRepository(session).list())
    render_validation(result)
    return 0 if result.ok else 1


def _parse_date(raw: str) -> datetime:
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _parse_end_date(raw: str) -> datetime:
    # A bare date covers the whole day.
    try:
        bare = date.fromisoformat(raw)
    except ValueError:
        return _parse_date(raw)
    return datetime.combine(bare, time.max, tzinfo=timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vehicle dealership profit and inventory reports.")
    parser.add_argument("--db", type=Path, default=None, help="SQLite file (defaults to settings)")
    parser.add_argument("--log-level", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Load transactions and expenses from CSV")
    import_parser.add_argument("--transactions", type=Path, default=None)
    import_parser.add_argument("--expenses", type=Path, default=None)
    import_parser.add_argument("--reset", action="store_true", help="Drop the database before importing")

    vehicles_parser = subparsers.add_parser("vehicles", help="Profit per vehicle")
    vehicles_parser.add_argument("--vehicle", default=None)

    pnl_parser = subparsers.add_parser("pnl", help="Cash-basis P&L over a date range")
    pnl_parser.add_argument("--from", dest="start", type=_parse_date, required=True)
    pnl_parser.add_argument("--to", dest="end", type=_parse_end_date, required=True)
    pnl_parser.add_argument(
        "--period",
        type=PeriodGranularity,
        choices=list(PeriodGranularity),
        default=PeriodGranularity.MONTHLY,
    )

    subparsers.add_parser("inventory", help="Current inventory valuation")

    top_parser = subparsers.add_parser("top", help="Best performing sales")
    top_parser.add_argument(
        "--sort-by",
        type=PerformanceSortKey,
        choices=list(PerformanceSortKey),
        default=PerformanceSortKey.PROFIT,
    )
    top_parser.add_argument("--limit", type=int, default=10)

    income_parser = subparsers.add_parser("income", help="Income of completed sales")
    income_parser.add_argument("--from", dest="start", type=_parse_date, default=None)
    income_parser.add_argument("--to", dest="end", type=_parse_end_date, default=None)
    income_parser.add_argument("--customer", default=None, help="Only sales to this counterparty")

    history_parser = subparsers.add_parser("history", help="Ownership cycles of one vehicle")
    history_parser.add_argument("--vehicle", required=True)

    subparsers.add_parser("validate", help="Report data problems")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = config()

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    db_file = args.db or settings.db_file
    session = init_db(db_file=db_file, reset=args.command == "import" and args.reset)
    logger.debug("Using database %s", db_file)

    currency = settings.currency
    with session:
        if args.command == "import":
            return run_import(session, args.transactions, args.expenses)
        if args.command == "vehicles":
            return run_vehicles(session, args.vehicle, currency=currency)
        if args.command == "pnl":
            return run_pnl(session, args.start, args.end, args.period, currency=currency)
        if args.command == "inventory":
            return run_inventory(session, currency=currency)
        if args.command == "top":
            return run_top(session, args.sort_by, args.limit, currency=currency)
        if args.command == "income":
            return run_income(session, args.start, args.end, args.customer, currency=currency)
        if args.command == "history":
            return run_history(session, args.vehicle, currency=currency)
        return run_validate(session)


if __name__ == "__main__":
    sys.exit(main())
