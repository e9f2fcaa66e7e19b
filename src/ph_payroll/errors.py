"""Domain error taxonomy.

Configuration errors abort an entire payroll computation. Not-found errors are
fatal for a single operation. Lifecycle violations live with the state
machine (``InvalidTransitionError``).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID


class PayrollError(Exception):
    """Base class for payroll engine errors."""


class ConfigurationError(PayrollError):
    """Required configuration (rates, rules, schedules) is missing."""


class MissingRateError(ConfigurationError):
    """Raised when no contribution or tax row matches salary and date."""

    def __init__(
        self,
        scheme: str,
        organization_id: UUID,
        salary: Decimal,
        as_of_date: date,
    ):
        self.scheme = scheme
        self.organization_id = organization_id
        self.salary = salary
        self.as_of_date = as_of_date
        super().__init__(
            f"Missing rate configuration: no {scheme} row for organization "
            f"{organization_id} covering salary {salary} on {as_of_date}"
        )


class MissingPayRuleError(ConfigurationError):
    """Raised when no pay rule multiplier matches a day/component."""

    def __init__(
        self,
        organization_id: UUID,
        day_type: str,
        holiday_type: str | None,
        component: str,
        as_of_date: date,
    ):
        self.organization_id = organization_id
        self.day_type = day_type
        self.holiday_type = holiday_type
        self.component = component
        self.as_of_date = as_of_date
        super().__init__(
            f"Missing payroll rule for organization {organization_id}: "
            f"day_type={day_type} holiday_type={holiday_type} "
            f"component={component} on {as_of_date}"
        )


class MissingCompensationError(ConfigurationError):
    """Raised when an employee has no effective compensation."""

    def __init__(self, employee_id: UUID, as_of_date: date):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        super().__init__(
            f"No compensation record for employee {employee_id} effective {as_of_date}"
        )


class MissingWorkScheduleError(ConfigurationError):
    """Raised when a work schedule is required but absent."""

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"No work schedule configured for employee {employee_id}")


class NotFoundError(PayrollError):
    """An entity referenced by an operation does not exist."""

    entity = "entity"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class EmployeeNotFoundError(NotFoundError):
    entity = "Employee"


class PayrollNotFoundError(NotFoundError):
    entity = "Payroll"


class RateOverlapError(PayrollError):
    """Raised when a new rate row overlaps an existing row of the same scheme."""

    def __init__(self, scheme: str, existing_id: UUID):
        self.scheme = scheme
        self.existing_id = existing_id
        super().__init__(
            f"{scheme} row overlaps existing row {existing_id} in both salary and date ranges"
        )
