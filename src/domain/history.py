from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

from .base_types import VehicleId
from .cycles import ProfitCalculation
from .performance import elapsed_days
from .records import Transaction


class VehicleHistory(BaseModel):
    """Summary of a vehicle's ownership cycles."""

    vehicle_id: VehicleId
    total_cycles: int = 0
    completed_cycles: int = 0
    total_profit: Decimal = Decimal(0)
    average_profit: Decimal = Decimal(0)
    average_duration_days: int = 0
    has_incomplete_cycle: bool = False
    current_acquisition: Transaction | None = None


def summarize_vehicle_history(calculation: ProfitCalculation) -> VehicleHistory:
    """Totals and averages over the completed cycles of one vehicle.

    ``current_acquisition`` is set when the latest cycle is still open, i.e. the
    vehicle is currently owned.
    """
    completed = [cycle for cycle in calculation.cycles if cycle.is_complete]
    durations = [
        elapsed_days(cycle.acquisition_transaction.date, cycle.sale_transaction.date)
        for cycle in completed
        if cycle.sale_transaction is not None
    ]

    average_duration = 0
    if durations:
        average_duration = int((Decimal(sum(durations)) / len(durations)).quantize(Decimal(1), rounding=ROUND_HALF_UP))

    current_acquisition = None
    if calculation.cycles and not calculation.cycles[-1].is_complete:
        current_acquisition = calculation.cycles[-1].acquisition_transaction

    return VehicleHistory(
        vehicle_id=calculation.vehicle_id,
        total_cycles=len(calculation.cycles),
        completed_cycles=len(completed),
        total_profit=calculation.total_profit,
        average_profit=calculation.total_profit / len(completed) if completed else Decimal(0),
        average_duration_days=average_duration,
        has_incomplete_cycle=len(completed) < len(calculation.cycles),
        current_acquisition=current_acquisition,
    )
