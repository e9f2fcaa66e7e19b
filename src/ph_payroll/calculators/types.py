"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


PH_TIMEZONE = ZoneInfo("Asia/Manila")


def local_wall_clock(moment: datetime, tz: tzinfo = PH_TIMEZONE) -> datetime:
    """Naive wall-clock time in ``tz``.

    Aware values (as returned by timezone-aware columns) are converted first.
    Naive values are taken to be local already.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(tz).replace(tzinfo=None)


class RateScheme(str, Enum):
    """Government rate tables."""

    TAX = "TAX"
    PHILHEALTH = "PHILHEALTH"
    SSS = "SSS"
    PAGIBIG = "PAGIBIG"


class DayType(str, Enum):
    REGULAR = "REGULAR"
    REST = "REST"
    HOLIDAY = "HOLIDAY"


class HolidayType(str, Enum):
    REGULAR = "REGULAR"
    SPECIAL_NON_WORKING = "SPECIAL_NON_WORKING"
    SPECIAL_WORKING = "SPECIAL_WORKING"
    COMPANY = "COMPANY"
    LGU = "LGU"


class PayComponent(str, Enum):
    """Bucket of pay a multiplier applies to."""

    REGULAR = "REGULAR"
    OVERTIME = "OVERTIME"
    NIGHT_DIFF = "NIGHT_DIFF"


class EarningType(str, Enum):
    BASE_SALARY = "BASE_SALARY"
    OVERTIME = "OVERTIME"
    NIGHT_DIFFERENTIAL = "NIGHT_DIFFERENTIAL"


class DeductionType(str, Enum):
    TAX = "TAX"
    PHILHEALTH = "PHILHEALTH"
    SSS = "SSS"
    PAGIBIG = "PAGIBIG"
    LATE = "LATE"
    UNDERTIME = "UNDERTIME"
    ABSENCE = "ABSENCE"


class TimeEntryStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class RequestStatus(str, Enum):
    """Status shared by overtime and leave requests."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LatePolicyType(str, Enum):
    LATE = "LATE"
    UNDERTIME = "UNDERTIME"
    ABSENCE = "ABSENCE"


class DeductionMethod(str, Enum):
    FIXED_AMOUNT = "FIXED_AMOUNT"
    PERCENTAGE = "PERCENTAGE"
    HOURLY_RATE = "HOURLY_RATE"


class LineType(str, Enum):
    """Payroll line item kinds."""

    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"


# ===== Rate tables =====


@dataclass(frozen=True)
class RateRow:
    """A salary- and date-bounded row of a government rate table."""

    row_id: UUID
    min_salary: Decimal
    max_salary: Decimal | None  # None = no upper limit
    effective_from: date
    effective_to: date | None  # None = open-ended

    def is_effective(self, as_of_date: date) -> bool:
        return self.effective_from <= as_of_date and (
            self.effective_to is None or self.effective_to >= as_of_date
        )

    def covers_salary(self, salary: Decimal) -> bool:
        return self.min_salary <= salary and (
            self.max_salary is None or self.max_salary >= salary
        )

    @property
    def is_top_bracket(self) -> bool:
        return self.max_salary is None


@dataclass(frozen=True)
class TaxBracketRow(RateRow):
    """BIR withholding tax bracket (monthly amounts)."""

    base_tax: Decimal
    rate: Decimal  # As decimal, e.g. 0.20 for 20%


@dataclass(frozen=True)
class ContributionRow(RateRow):
    """PhilHealth / Pag-IBIG contribution row."""

    employee_rate: Decimal
    employer_rate: Decimal


@dataclass(frozen=True)
class SSSRow(ContributionRow):
    """SSS contribution row with employees' compensation share."""

    ec_rate: Decimal


# ===== Rules, calendar, schedule =====


@dataclass(frozen=True)
class PayRuleRow:
    """Pay multiplier for a day type / holiday type / pay component."""

    rule_id: UUID
    organization_id: UUID
    day_type: DayType
    holiday_type: HolidayType | None  # None = wildcard
    applies_to: PayComponent
    multiplier: Decimal
    effective_from: date
    effective_to: date | None = None


@dataclass(frozen=True)
class HolidayRow:
    holiday_id: UUID
    date: date
    type: HolidayType
    is_recurring: bool = False
    employee_id: UUID | None = None  # Set = override pinned to one employee
    name: str = ""

    def falls_on(self, work_date: date) -> bool:
        if self.date == work_date:
            return True
        return (
            self.is_recurring
            and self.date.month == work_date.month
            and self.date.day == work_date.day
        )


@dataclass(frozen=True)
class ScheduleRow:
    """Employee work schedule as seen by the calculators."""

    default_start: time | None = None
    default_end: time | None = None
    work_days: tuple[str, ...] = ()
    rest_days: tuple[str, ...] = ()
    grace_period_minutes: int = 0
    allow_late_deduction: bool = True
    daily_rate: Decimal | None = None
    hourly_rate: Decimal | None = None


# ===== Attendance =====


@dataclass(frozen=True)
class BreakRow:
    break_start_at: datetime
    break_end_at: datetime | None
    is_paid: bool = False


@dataclass(frozen=True)
class TimeEntryRow:
    entry_id: UUID
    employee_id: UUID
    work_date: date
    clock_in_at: datetime
    clock_out_at: datetime | None
    status: TimeEntryStatus = TimeEntryStatus.CLOSED

    @property
    def is_closed(self) -> bool:
        return self.status == TimeEntryStatus.CLOSED and self.clock_out_at is not None


@dataclass(frozen=True)
class LeaveRow:
    start_date: date
    end_date: date
    status: RequestStatus = RequestStatus.APPROVED

    def covers(self, day: date) -> bool:
        return (
            self.status == RequestStatus.APPROVED
            and self.start_date <= day <= self.end_date
        )


@dataclass(frozen=True)
class LatePolicyRow:
    policy_id: UUID
    policy_type: LatePolicyType
    deduction_method: DeductionMethod
    effective_date: date
    end_date: date | None = None
    fixed_amount: Decimal | None = None
    percentage_rate: Decimal | None = None
    hourly_rate_multiplier: Decimal | None = None
    minimum_late_minutes: int = 1
    max_deduction_per_day: Decimal | None = None
    max_deduction_per_cutoff: Decimal | None = None
    is_active: bool = True

    def is_effective(self, as_of_date: date) -> bool:
        return (
            self.is_active
            and self.effective_date <= as_of_date
            and (self.end_date is None or self.end_date >= as_of_date)
        )


# ===== Results =====


@dataclass(frozen=True)
class DayClassification:
    day_type: DayType
    holiday_type: HolidayType | None = None


@dataclass
class DailyPayResult:
    """Pay for a single closed time entry."""

    work_date: date
    day_type: DayType
    holiday_type: HolidayType | None
    worked_minutes: int
    regular_minutes: int
    overtime_minutes: int
    night_diff_minutes: int
    regular_pay: Decimal
    overtime_pay: Decimal
    night_diff_pay: Decimal

    @property
    def total_pay(self) -> Decimal:
        return self.regular_pay + self.overtime_pay + self.night_diff_pay


@dataclass(frozen=True)
class GovernmentDeductionResult:
    tax: Decimal
    philhealth: Decimal
    sss: Decimal
    pagibig: Decimal
    taxable_income: Decimal

    @property
    def total_deductions(self) -> Decimal:
        return self.tax + self.philhealth + self.sss + self.pagibig


@dataclass(frozen=True)
class LateMetrics:
    """Per-period lateness or undertime totals."""

    total_minutes: int = 0
    instances: int = 0
    total_deduction: Decimal = ZERO


@dataclass(frozen=True)
class PolicyDeductions:
    late: Decimal = ZERO
    undertime: Decimal = ZERO
    absence: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.late + self.undertime + self.absence


@dataclass
class LineCandidate:
    """A payroll line item before persistence."""

    line_type: LineType
    code: str  # EarningType / DeductionType value
    amount: Decimal  # Always positive; sign follows line_type
    hours: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "line_type": self.line_type.value,
            "code": self.code,
            "amount": str(self.amount),
            "hours": str(self.hours) if self.hours is not None else None,
            "rate": str(self.rate) if self.rate is not None else None,
        }


@dataclass
class PayrollCalculationResult:
    """Result of computing one employee's payroll for a period."""

    employee_id: UUID
    organization_id: UUID
    period_start: date
    period_end: date
    base_salary: Decimal
    minute_rate: Decimal
    daily_breakdown: list[DailyPayResult]
    government: GovernmentDeductionResult
    policy: PolicyDeductions
    absent_days: int = 0
    late: LateMetrics = field(default_factory=LateMetrics)
    undertime: LateMetrics = field(default_factory=LateMetrics)
    lines: list[LineCandidate] = field(default_factory=list)
    calculation_id: UUID | None = None
    inputs_fingerprint: str = ""

    @property
    def total_regular_minutes(self) -> int:
        return sum(d.regular_minutes for d in self.daily_breakdown)

    @property
    def total_overtime_minutes(self) -> int:
        return sum(d.overtime_minutes for d in self.daily_breakdown)

    @property
    def total_night_diff_minutes(self) -> int:
        return sum(d.night_diff_minutes for d in self.daily_breakdown)

    @property
    def total_regular_pay(self) -> Decimal:
        return sum_daily_pay(self.daily_breakdown, "regular_pay")

    @property
    def total_overtime_pay(self) -> Decimal:
        return sum_daily_pay(self.daily_breakdown, "overtime_pay")

    @property
    def total_night_diff_pay(self) -> Decimal:
        return sum_daily_pay(self.daily_breakdown, "night_diff_pay")

    @property
    def gross_pay(self) -> Decimal:
        return gross_from_daily(self.daily_breakdown)

    @property
    def total_deductions(self) -> Decimal:
        return self.government.total_deductions + self.policy.total

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay - self.total_deductions


def sum_daily_pay(daily: list[DailyPayResult], attr: str) -> Decimal:
    """Sum one pay bucket across days, rounded once at the end."""
    return round_to_cents(sum((getattr(d, attr) for d in daily), ZERO))


def gross_from_daily(daily: list[DailyPayResult]) -> Decimal:
    return (
        sum_daily_pay(daily, "regular_pay")
        + sum_daily_pay(daily, "overtime_pay")
        + sum_daily_pay(daily, "night_diff_pay")
    )
