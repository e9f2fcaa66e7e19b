"""Government rate tables, pay rules and attendance deduction policies."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from ph_payroll.calculators.types import (
    ContributionRow,
    DayType,
    DeductionMethod,
    HolidayType,
    LatePolicyRow,
    LatePolicyType,
    PayComponent,
    PayRuleRow,
    SSSRow,
    TaxBracketRow,
)
from ph_payroll.models.base import Base, TimestampMixin


class SalaryBracketMixin:
    """Organization-scoped salary range effective over a date range."""

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def _bounds(self) -> dict:
        return {
            "row_id": self.id,
            "min_salary": Decimal(self.min_salary),
            "max_salary": Decimal(self.max_salary) if self.max_salary is not None else None,
            "effective_from": self.effective_from,
            "effective_to": self.effective_to,
        }


class TaxBracket(SalaryBracketMixin, Base, TimestampMixin):
    """BIR withholding tax bracket on monthly taxable income."""

    __tablename__ = "tax_bracket"

    base_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)

    __table_args__ = (
        CheckConstraint("rate >= 0 AND rate <= 1", name="tax_bracket_rate_check"),
    )

    def to_row(self) -> TaxBracketRow:
        return TaxBracketRow(
            **self._bounds(), base_tax=Decimal(self.base_tax), rate=Decimal(self.rate)
        )


class PhilhealthRate(SalaryBracketMixin, Base, TimestampMixin):
    __tablename__ = "philhealth_rate"

    employee_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    employer_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)

    def to_row(self) -> ContributionRow:
        return ContributionRow(
            **self._bounds(),
            employee_rate=Decimal(self.employee_rate),
            employer_rate=Decimal(self.employer_rate),
        )


class PagibigRate(SalaryBracketMixin, Base, TimestampMixin):
    __tablename__ = "pagibig_rate"

    employee_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    employer_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)

    def to_row(self) -> ContributionRow:
        return ContributionRow(
            **self._bounds(),
            employee_rate=Decimal(self.employee_rate),
            employer_rate=Decimal(self.employer_rate),
        )


class SSSRate(SalaryBracketMixin, Base, TimestampMixin):
    __tablename__ = "sss_rate"

    employee_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    employer_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    ec_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=0)

    def to_row(self) -> SSSRow:
        return SSSRow(
            **self._bounds(),
            employee_rate=Decimal(self.employee_rate),
            employer_rate=Decimal(self.employer_rate),
            ec_rate=Decimal(self.ec_rate),
        )


class PayRule(Base, TimestampMixin):
    """Pay multiplier keyed by day type, holiday type and pay component."""

    __tablename__ = "pay_rule"

    pay_rule_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_type: Mapped[str] = mapped_column(String, nullable=False)
    holiday_type: Mapped[str | None] = mapped_column(String, nullable=True)
    applies_to: Mapped[str] = mapped_column(String, nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "day_type IN ('REGULAR', 'REST', 'HOLIDAY')", name="pay_rule_day_type_check"
        ),
        CheckConstraint(
            "applies_to IN ('REGULAR', 'OVERTIME', 'NIGHT_DIFF')",
            name="pay_rule_applies_to_check",
        ),
        CheckConstraint("multiplier >= 0", name="pay_rule_multiplier_check"),
    )

    def to_row(self) -> PayRuleRow:
        return PayRuleRow(
            rule_id=self.pay_rule_id,
            organization_id=self.organization_id,
            day_type=DayType(self.day_type),
            holiday_type=HolidayType(self.holiday_type) if self.holiday_type else None,
            applies_to=PayComponent(self.applies_to),
            multiplier=Decimal(self.multiplier),
            effective_from=self.effective_from,
            effective_to=self.effective_to,
        )


class LateDeductionPolicy(Base, TimestampMixin):
    """Organization policy for late, undertime and absence deductions."""

    __tablename__ = "late_deduction_policy"

    policy_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    policy_type: Mapped[str] = mapped_column(String, nullable=False, default="LATE")
    deduction_method: Mapped[str] = mapped_column(String, nullable=False)
    fixed_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    percentage_rate: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    hourly_rate_multiplier: Mapped[Decimal | None] = mapped_column(
        Numeric(6, 4), nullable=True
    )
    minimum_late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_deduction_per_day: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    max_deduction_per_cutoff: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "policy_type IN ('LATE', 'UNDERTIME', 'ABSENCE')",
            name="late_policy_type_check",
        ),
        CheckConstraint(
            "deduction_method IN ('FIXED_AMOUNT', 'PERCENTAGE', 'HOURLY_RATE')",
            name="late_policy_method_check",
        ),
    )

    def to_row(self) -> LatePolicyRow:
        return LatePolicyRow(
            policy_id=self.policy_id,
            policy_type=LatePolicyType(self.policy_type),
            deduction_method=DeductionMethod(self.deduction_method),
            effective_date=self.effective_date,
            end_date=self.end_date,
            fixed_amount=self.fixed_amount,
            percentage_rate=self.percentage_rate,
            hourly_rate_multiplier=self.hourly_rate_multiplier,
            minimum_late_minutes=self.minimum_late_minutes,
            max_deduction_per_day=self.max_deduction_per_day,
            max_deduction_per_cutoff=self.max_deduction_per_cutoff,
            is_active=self.is_active,
        )
