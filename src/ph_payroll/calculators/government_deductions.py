"""Statutory deductions: BIR withholding tax, PhilHealth, SSS and Pag-IBIG."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from ph_payroll.calculators.rate_resolver import RateResolver
from ph_payroll.calculators.types import (
    ZERO,
    ContributionRow,
    GovernmentDeductionResult,
    RateRow,
    RateScheme,
    SSSRow,
    TaxBracketRow,
    round_to_cents,
)
from ph_payroll.errors import MissingRateError

logger = logging.getLogger(__name__)

PAGIBIG_EMPLOYEE_CAP = Decimal("100")
MONTHS_PER_YEAR = 12
DEFAULT_PROBE_SALARY = Decimal("25000")

RowT = TypeVar("RowT", bound=RateRow)


def _row_as(row: RateRow, kind: type[RowT]) -> RowT:
    if not isinstance(row, kind):
        raise TypeError(f"Expected {kind.__name__} rate row, got {type(row).__name__}")
    return row


@dataclass(frozen=True)
class ContributionShare:
    """Employee and employer share of one contribution scheme."""

    scheme: RateScheme
    employee_share: Decimal
    employer_share: Decimal
    ec_share: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.employee_share + self.employer_share + self.ec_share


@dataclass(frozen=True)
class ContributionBreakdown:
    philhealth: ContributionShare
    sss: ContributionShare
    pagibig: ContributionShare
    tax_bracket: TaxBracketRow


class GovernmentDeductionsCalculator:
    """Computes the four statutory deductions for a monthly salary.

    Contributions are computed on the gross salary. Withholding tax is
    computed on taxable income (gross minus contributions) using the
    annualized bracket formula::

        annual_tax = base_tax * 12 + max(0, base * 12 - min_salary * 12) * rate
        monthly_tax = round2(annual_tax / 12)
    """

    def __init__(self, rate_resolver: RateResolver):
        self.rate_resolver = rate_resolver

    # ===== Pure formulas =====

    @staticmethod
    def philhealth_amount(salary: Decimal, row: ContributionRow) -> Decimal:
        return round_to_cents(salary * row.employee_rate)

    @staticmethod
    def sss_base(salary: Decimal, row: SSSRow) -> Decimal:
        # Open-ended top bracket caps the contribution base at its floor.
        if row.max_salary is None and salary > row.min_salary:
            return row.min_salary
        return salary

    @classmethod
    def sss_amount(cls, salary: Decimal, row: SSSRow) -> Decimal:
        return round_to_cents(cls.sss_base(salary, row) * row.employee_rate)

    @staticmethod
    def pagibig_amount(salary: Decimal, row: ContributionRow) -> Decimal:
        return round_to_cents(min(salary * row.employee_rate, PAGIBIG_EMPLOYEE_CAP))

    @staticmethod
    def monthly_tax(monthly_base: Decimal, bracket: TaxBracketRow) -> Decimal:
        if bracket.rate == 0:
            return round_to_cents(ZERO)
        annual = monthly_base * MONTHS_PER_YEAR
        excess = max(ZERO, annual - bracket.min_salary * MONTHS_PER_YEAR)
        annual_tax = bracket.base_tax * MONTHS_PER_YEAR + excess * bracket.rate
        return round_to_cents(annual_tax / MONTHS_PER_YEAR)

    @staticmethod
    def taxable_income(gross: Decimal, contributions: Decimal) -> Decimal:
        return max(ZERO, gross - contributions)

    # ===== Resolution =====

    async def calculate_tax(
        self,
        organization_id: UUID,
        taxable_income: Decimal,
        gross_salary: Decimal,
        as_of_date: date,
        monthly_rate_override: Decimal | None = None,
    ) -> Decimal:
        """Withholding tax for the period.

        With an override, the bracket and tax are computed on the override
        and then scaled by ``gross_salary / override``.
        """
        base = monthly_rate_override if monthly_rate_override is not None else taxable_income
        bracket = await self.rate_resolver.resolve(
            RateScheme.TAX, organization_id, base, as_of_date
        )
        bracket = _row_as(bracket, TaxBracketRow)
        tax = self.monthly_tax(base, bracket)

        if monthly_rate_override is not None and monthly_rate_override > 0:
            tax = round_to_cents(tax * gross_salary / monthly_rate_override)
        return tax

    async def calculate_all(
        self,
        organization_id: UUID,
        gross_salary: Decimal,
        as_of_date: date,
        monthly_rate_override: Decimal | None = None,
    ) -> GovernmentDeductionResult:
        """Calculate tax, PhilHealth, SSS and Pag-IBIG.

        Raises:
            MissingRateError: If any scheme has no matching row
        """
        salary = Decimal(gross_salary)

        philhealth_row = await self.rate_resolver.resolve(
            RateScheme.PHILHEALTH, organization_id, salary, as_of_date
        )
        sss_row = await self.rate_resolver.resolve(
            RateScheme.SSS, organization_id, salary, as_of_date
        )
        pagibig_row = await self.rate_resolver.resolve(
            RateScheme.PAGIBIG, organization_id, salary, as_of_date
        )
        philhealth_row = _row_as(philhealth_row, ContributionRow)
        sss_row = _row_as(sss_row, SSSRow)
        pagibig_row = _row_as(pagibig_row, ContributionRow)

        philhealth = self.philhealth_amount(salary, philhealth_row)
        sss = self.sss_amount(salary, sss_row)
        pagibig = self.pagibig_amount(salary, pagibig_row)

        taxable = self.taxable_income(salary, philhealth + sss + pagibig)
        tax = await self.calculate_tax(
            organization_id, taxable, salary, as_of_date, monthly_rate_override
        )

        logger.debug(
            "Deductions for org %s on %s: gross=%s tax=%s philhealth=%s sss=%s pagibig=%s",
            organization_id,
            as_of_date,
            salary,
            tax,
            philhealth,
            sss,
            pagibig,
        )

        return GovernmentDeductionResult(
            tax=tax,
            philhealth=philhealth,
            sss=sss,
            pagibig=pagibig,
            taxable_income=round_to_cents(taxable),
        )

    async def contribution_breakdown(
        self,
        organization_id: UUID,
        salary: Decimal,
        as_of_date: date,
    ) -> ContributionBreakdown:
        """Employee, employer and EC shares per scheme, plus the tax bracket."""
        salary = Decimal(salary)
        philhealth_row = await self.rate_resolver.resolve(
            RateScheme.PHILHEALTH, organization_id, salary, as_of_date
        )
        sss_row = await self.rate_resolver.resolve(
            RateScheme.SSS, organization_id, salary, as_of_date
        )
        pagibig_row = await self.rate_resolver.resolve(
            RateScheme.PAGIBIG, organization_id, salary, as_of_date
        )
        bracket = await self.rate_resolver.resolve(
            RateScheme.TAX, organization_id, salary, as_of_date
        )
        philhealth_row = _row_as(philhealth_row, ContributionRow)
        sss_row = _row_as(sss_row, SSSRow)
        pagibig_row = _row_as(pagibig_row, ContributionRow)
        bracket = _row_as(bracket, TaxBracketRow)

        sss_base = self.sss_base(salary, sss_row)
        return ContributionBreakdown(
            philhealth=ContributionShare(
                RateScheme.PHILHEALTH,
                employee_share=self.philhealth_amount(salary, philhealth_row),
                employer_share=round_to_cents(salary * philhealth_row.employer_rate),
            ),
            sss=ContributionShare(
                RateScheme.SSS,
                employee_share=self.sss_amount(salary, sss_row),
                employer_share=round_to_cents(sss_base * sss_row.employer_rate),
                ec_share=round_to_cents(sss_base * sss_row.ec_rate),
            ),
            pagibig=ContributionShare(
                RateScheme.PAGIBIG,
                employee_share=self.pagibig_amount(salary, pagibig_row),
                employer_share=round_to_cents(
                    min(salary * pagibig_row.employer_rate, PAGIBIG_EMPLOYEE_CAP)
                ),
            ),
            tax_bracket=bracket,
        )

    async def validate_configuration(
        self,
        organization_id: UUID,
        as_of_date: date,
        probe_salary: Decimal = DEFAULT_PROBE_SALARY,
    ) -> tuple[bool, list[str]]:
        """Check every scheme resolves for a probe salary.

        Returns (is_valid, missing_schemes).
        """
        missing: list[str] = []
        for scheme in RateScheme:
            try:
                await self.rate_resolver.resolve(scheme, organization_id, probe_salary, as_of_date)
            except MissingRateError:
                missing.append(scheme.value)
        if missing:
            logger.warning(
                "Organization %s is missing rate configuration for %s on %s",
                organization_id,
                ", ".join(missing),
                as_of_date,
            )
        return len(missing) == 0, missing
