"""Government rate table resolution by salary bracket and effective date."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.calculators.types import RateRow, RateScheme
from ph_payroll.errors import MissingRateError
from ph_payroll.models import PagibigRate, PhilhealthRate, SSSRate, TaxBracket

RowT = TypeVar("RowT", bound=RateRow)

RATE_MODELS = {
    RateScheme.TAX: TaxBracket,
    RateScheme.PHILHEALTH: PhilhealthRate,
    RateScheme.SSS: SSSRate,
    RateScheme.PAGIBIG: PagibigRate,
}


class RateResolver:
    """Resolves the rate row for a scheme, salary and date.

    A row applies when its effective window contains the date and its salary
    bracket contains the salary. Unbounded ``max_salary`` / ``effective_to``
    are treated as open. When several rows apply, the one with the highest
    ``min_salary`` wins.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(
        self,
        scheme: RateScheme,
        organization_id: UUID,
        salary: Decimal,
        as_of_date: date,
    ) -> RateRow:
        """Resolve the applicable row.

        Raises:
            MissingRateError: If no row matches
        """
        rows = await self.get_effective_rows(scheme, organization_id, as_of_date)
        row = self.select_applicable(rows, salary, as_of_date)
        if row is None:
            raise MissingRateError(scheme.value, organization_id, salary, as_of_date)
        return row

    async def get_effective_rows(
        self,
        scheme: RateScheme,
        organization_id: UUID,
        as_of_date: date,
    ) -> list[RateRow]:
        """Get all rows of a scheme effective on a date."""
        model = RATE_MODELS[scheme]
        result = await self.session.execute(
            select(model)
            .where(
                model.organization_id == organization_id,
                model.effective_from <= as_of_date,
                (model.effective_to.is_(None) | (model.effective_to >= as_of_date)),
            )
            .order_by(model.min_salary)
        )
        return [r.to_row() for r in result.scalars().all()]

    @staticmethod
    def select_applicable(
        rows: Iterable[RowT],
        salary: Decimal,
        as_of_date: date,
    ) -> RowT | None:
        """Pick the matching row with the highest ``min_salary``."""
        best: RowT | None = None
        for row in rows:
            if not (row.is_effective(as_of_date) and row.covers_salary(salary)):
                continue
            if best is None or row.min_salary > best.min_salary:
                best = row
        return best
