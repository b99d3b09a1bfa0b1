"""Domain models and calculators for the vehicle ledger.

This package contains the in-memory (Pydantic) records and the profit engine:
ownership cycles, portfolio totals, sales income, period P&L and inventory
valuation. It is independent from persistence models so that business logic
and testing can evolve without DB coupling.
"""

__all__ = [
    "base_types",
    "cycles",
    "history",
    "income",
    "inventory",
    "performance",
    "period",
    "portfolio",
    "records",
    "validation",
]
