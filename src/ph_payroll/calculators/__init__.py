"""Payroll calculation pipeline.

Only the value types are re-exported here; the database-backed calculators
import the ORM models, which themselves depend on these types.
"""

from ph_payroll.calculators.types import (
    DayType,
    DeductionType,
    EarningType,
    HolidayType,
    PayComponent,
    RateScheme,
    round_to_cents,
)

__all__ = [
    "DayType",
    "DeductionType",
    "EarningType",
    "HolidayType",
    "PayComponent",
    "RateScheme",
    "round_to_cents",
]
