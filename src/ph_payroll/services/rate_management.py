"""Write-time validation and listing of government rate tables."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.calculators.rate_resolver import RATE_MODELS, RateResolver
from ph_payroll.calculators.types import RateRow, RateScheme
from ph_payroll.errors import RateOverlapError

logger = logging.getLogger(__name__)

# Upper bound used when comparing open-ended ranges
_OPEN_SALARY = Decimal("Infinity")
_OPEN_DATE = date.max


def _ranges_overlap(a_lo: Any, a_hi: Any, b_lo: Any, b_hi: Any) -> bool:
    return a_lo <= b_hi and b_lo <= a_hi


class RateManagementService:
    """Adds rate rows while keeping each scheme's table unambiguous.

    Two rows of the same scheme and organization may not overlap in both
    salary bracket and effective window.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.rate_resolver = RateResolver(session)

    @staticmethod
    def overlaps(
        min_salary: Decimal,
        max_salary: Decimal | None,
        effective_from: date,
        effective_to: date | None,
        other: RateRow,
    ) -> bool:
        salary_overlap = _ranges_overlap(
            min_salary,
            max_salary if max_salary is not None else _OPEN_SALARY,
            other.min_salary,
            other.max_salary if other.max_salary is not None else _OPEN_SALARY,
        )
        date_overlap = _ranges_overlap(
            effective_from,
            effective_to or _OPEN_DATE,
            other.effective_from,
            other.effective_to or _OPEN_DATE,
        )
        return salary_overlap and date_overlap

    async def add_rate(self, scheme: RateScheme, organization_id: UUID, **fields: Any):
        """Insert a rate row after checking it overlaps nothing.

        Raises:
            RateOverlapError: If an existing row overlaps in salary and date
            ValueError: If the row's own ranges are inverted
        """
        min_salary = Decimal(fields["min_salary"])
        max_salary = fields.get("max_salary")
        max_salary = Decimal(max_salary) if max_salary is not None else None
        effective_from: date = fields["effective_from"]
        effective_to: date | None = fields.get("effective_to")

        if max_salary is not None and max_salary < min_salary:
            raise ValueError(f"max_salary {max_salary} is below min_salary {min_salary}")
        if effective_to is not None and effective_to < effective_from:
            raise ValueError(f"effective_to {effective_to} is before effective_from {effective_from}")

        model = RATE_MODELS[scheme]
        result = await self.session.execute(
            select(model).where(model.organization_id == organization_id)
        )
        for existing in result.scalars().all():
            row = existing.to_row()
            if self.overlaps(min_salary, max_salary, effective_from, effective_to, row):
                raise RateOverlapError(scheme.value, row.row_id)

        record = model(organization_id=organization_id, **fields)
        self.session.add(record)
        await self.session.flush()
        logger.info(
            "Added %s row %s for organization %s (%s-%s from %s)",
            scheme.value,
            record.id,
            organization_id,
            min_salary,
            max_salary if max_salary is not None else "open",
            effective_from,
        )
        return record

    async def current_rates(
        self,
        scheme: RateScheme,
        organization_id: UUID,
        as_of_date: date | None = None,
    ) -> list[RateRow]:
        """Rows of a scheme effective on a date, lowest bracket first."""
        return await self.rate_resolver.get_effective_rows(
            scheme, organization_id, as_of_date or date.today()
        )
