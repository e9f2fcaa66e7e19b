"""Tests for statutory deductions.

Pure formulas are tested on hand-built rows; resolution runs against the
seeded rate tables.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ph_payroll.calculators.government_deductions import GovernmentDeductionsCalculator
from ph_payroll.calculators.rate_resolver import RateResolver
from ph_payroll.calculators.types import ContributionRow, RateScheme, SSSRow, TaxBracketRow
from ph_payroll.errors import MissingRateError

ON = date(2024, 6, 30)


def _bounds(min_salary, max_salary=None):
    return dict(
        row_id=uuid4(),
        min_salary=Decimal(min_salary),
        max_salary=Decimal(max_salary) if max_salary is not None else None,
        effective_from=date(2024, 1, 1),
        effective_to=None,
    )


class TestFormulas:
    """Per-scheme arithmetic."""

    def test_philhealth_rounds_half_up(self):
        row = ContributionRow(**_bounds("0"), employee_rate=Decimal("0.0275"), employer_rate=Decimal("0.0275"))
        assert GovernmentDeductionsCalculator.philhealth_amount(Decimal("613.44"), row) == Decimal("16.87")

    def test_sss_top_bracket_caps_base(self):
        row = SSSRow(
            **_bounds("20000"),
            employee_rate=Decimal("0.045"),
            employer_rate=Decimal("0.095"),
            ec_rate=Decimal("0"),
        )
        assert GovernmentDeductionsCalculator.sss_base(Decimal("45000"), row) == Decimal("20000")
        assert GovernmentDeductionsCalculator.sss_amount(Decimal("45000"), row) == Decimal("900.00")

    def test_sss_bounded_bracket_uses_salary(self):
        row = SSSRow(
            **_bounds("0", "19999.99"),
            employee_rate=Decimal("0.045"),
            employer_rate=Decimal("0.095"),
            ec_rate=Decimal("0"),
        )
        assert GovernmentDeductionsCalculator.sss_amount(Decimal("16000"), row) == Decimal("720.00")

    def test_pagibig_capped_at_100(self):
        row = ContributionRow(**_bounds("0"), employee_rate=Decimal("0.02"), employer_rate=Decimal("0.02"))
        assert GovernmentDeductionsCalculator.pagibig_amount(Decimal("3000"), row) == Decimal("60.00")
        assert GovernmentDeductionsCalculator.pagibig_amount(Decimal("16000"), row) == Decimal("100.00")

    def test_zero_rate_bracket_is_tax_free(self):
        bracket = TaxBracketRow(**_bounds("0", "20832.99"), base_tax=Decimal("0"), rate=Decimal("0"))
        assert GovernmentDeductionsCalculator.monthly_tax(Decimal("14740"), bracket) == Decimal("0.00")

    def test_bracket_tax_on_excess(self):
        bracket = TaxBracketRow(**_bounds("33333"), base_tax=Decimal("1875"), rate=Decimal("0.20"))
        assert GovernmentDeductionsCalculator.monthly_tax(Decimal("37900"), bracket) == Decimal("2788.40")

    def test_taxable_income_never_negative(self):
        assert GovernmentDeductionsCalculator.taxable_income(Decimal("100"), Decimal("250")) == Decimal("0")


class TestCalculateAll:
    """Full deduction set from the rate tables."""

    @pytest.fixture
    def calculator(self, session):
        return GovernmentDeductionsCalculator(RateResolver(session))

    @pytest.mark.asyncio
    async def test_sixteen_thousand_monthly_salary(self, calculator, organization, rate_tables):
        result = await calculator.calculate_all(organization.organization_id, Decimal("16000"), ON)

        assert result.philhealth == Decimal("440.00")
        assert result.sss == Decimal("720.00")
        assert result.pagibig == Decimal("100.00")
        assert result.tax == Decimal("0.00")
        assert result.taxable_income == Decimal("14740.00")
        assert result.total_deductions == Decimal("1260.00")
        assert Decimal("16000") - result.total_deductions == Decimal("14740.00")

    @pytest.mark.asyncio
    async def test_taxed_salary(self, calculator, organization, rate_tables):
        result = await calculator.calculate_all(organization.organization_id, Decimal("40000"), ON)

        assert result.philhealth == Decimal("1100.00")
        assert result.sss == Decimal("900.00")
        assert result.pagibig == Decimal("100.00")
        assert result.taxable_income == Decimal("37900.00")
        assert result.tax == Decimal("2788.40")

    @pytest.mark.asyncio
    async def test_override_scales_tax(self, calculator, organization, rate_tables):
        """Partial periods are taxed on the monthly base and prorated by gross."""
        tax = await calculator.calculate_tax(
            organization.organization_id,
            taxable_income=Decimal("19000"),
            gross_salary=Decimal("20000"),
            as_of_date=ON,
            monthly_rate_override=Decimal("40000"),
        )
        assert tax == Decimal("1604.20")

    @pytest.mark.asyncio
    async def test_missing_scheme_aborts(self, calculator, organization):
        with pytest.raises(MissingRateError):
            await calculator.calculate_all(organization.organization_id, Decimal("16000"), ON)

    @pytest.mark.asyncio
    async def test_contribution_breakdown(self, calculator, organization, rate_tables):
        breakdown = await calculator.contribution_breakdown(
            organization.organization_id, Decimal("16000"), ON
        )

        assert breakdown.philhealth.employer_share == Decimal("440.00")
        assert breakdown.sss.employee_share == Decimal("720.00")
        assert breakdown.sss.employer_share == Decimal("1520.00")
        assert breakdown.sss.ec_share == Decimal("16.00")
        assert breakdown.pagibig.employer_share == Decimal("100.00")
        assert breakdown.tax_bracket.rate == Decimal("0")

    @pytest.mark.asyncio
    async def test_validate_configuration(self, calculator, organization, rate_tables):
        assert await calculator.validate_configuration(organization.organization_id, ON) == (True, [])

        ok, missing = await calculator.validate_configuration(uuid4(), ON)
        assert ok is False
        assert set(missing) == {scheme.value for scheme in RateScheme}
