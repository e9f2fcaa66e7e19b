"""Earning and deduction line items with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal

from ph_payroll.calculators.types import (
    ZERO,
    DeductionType,
    EarningType,
    LineCandidate,
    LineType,
    PayrollCalculationResult,
    round_to_cents,
)

MINUTES_PER_HOUR = Decimal("60")


class LineItemBuilder:
    """Builds payroll line items from a calculation result.

    Amounts are stored positive; ``line_type`` decides whether a line adds
    to gross or to total deductions. Zero-amount lines are not emitted.

    NET = Σ(EARNING) - Σ(DEDUCTION)
    """

    @staticmethod
    def compute_line_hash(line: LineCandidate) -> str:
        """Compute deterministic hash for a line item.

        The hash is based on the canonical representation of defining fields,
        ensuring identical inputs produce identical hashes.
        """
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def create_earning_line(
        earning_type: EarningType,
        amount: Decimal,
        hours: Decimal | None = None,
        rate: Decimal | None = None,
        explanation: str | None = None,
    ) -> LineCandidate:
        return LineCandidate(
            line_type=LineType.EARNING,
            code=earning_type.value,
            amount=round_to_cents(abs(amount)),
            hours=hours,
            rate=rate,
            explanation=explanation,
        )

    @staticmethod
    def create_deduction_line(
        deduction_type: DeductionType,
        amount: Decimal,
        explanation: str | None = None,
    ) -> LineCandidate:
        return LineCandidate(
            line_type=LineType.DEDUCTION,
            code=deduction_type.value,
            amount=round_to_cents(abs(amount)),
            explanation=explanation,
        )

    @classmethod
    def build_lines(cls, result: PayrollCalculationResult) -> list[LineCandidate]:
        """Itemize earnings and deductions of a computed payroll."""

        def hours(minutes: int) -> Decimal:
            return round_to_cents(Decimal(minutes) / MINUTES_PER_HOUR)

        hourly = round_to_cents(result.minute_rate * MINUTES_PER_HOUR)
        candidates = [
            cls.create_earning_line(
                EarningType.BASE_SALARY,
                result.total_regular_pay,
                hours=hours(result.total_regular_minutes),
                rate=hourly,
                explanation="Regular hours",
            ),
            cls.create_earning_line(
                EarningType.OVERTIME,
                result.total_overtime_pay,
                hours=hours(result.total_overtime_minutes),
                rate=hourly,
                explanation="Approved overtime",
            ),
            cls.create_earning_line(
                EarningType.NIGHT_DIFFERENTIAL,
                result.total_night_diff_pay,
                hours=hours(result.total_night_diff_minutes),
                rate=hourly,
                explanation="Night differential 22:00-06:00",
            ),
            cls.create_deduction_line(DeductionType.TAX, result.government.tax, "BIR withholding tax"),
            cls.create_deduction_line(
                DeductionType.PHILHEALTH, result.government.philhealth, "PhilHealth contribution"
            ),
            cls.create_deduction_line(DeductionType.SSS, result.government.sss, "SSS contribution"),
            cls.create_deduction_line(
                DeductionType.PAGIBIG, result.government.pagibig, "Pag-IBIG contribution"
            ),
            cls.create_deduction_line(
                DeductionType.LATE,
                result.policy.late,
                f"{result.late.instances} late instance(s), {result.late.total_minutes} min",
            ),
            cls.create_deduction_line(
                DeductionType.UNDERTIME,
                result.policy.undertime,
                f"{result.undertime.instances} undertime instance(s), "
                f"{result.undertime.total_minutes} min",
            ),
            cls.create_deduction_line(
                DeductionType.ABSENCE,
                result.policy.absence,
                f"{result.absent_days} absent day(s)",
            ),
        ]
        return [line for line in candidates if line.amount > 0]

    @staticmethod
    def calculate_gross_from_lines(lines: list[LineCandidate]) -> Decimal:
        gross = sum((line.amount for line in lines if line.line_type == LineType.EARNING), ZERO)
        return round_to_cents(gross)

    @staticmethod
    def calculate_deductions_from_lines(lines: list[LineCandidate]) -> Decimal:
        total = sum((line.amount for line in lines if line.line_type == LineType.DEDUCTION), ZERO)
        return round_to_cents(total)

    @classmethod
    def calculate_net_from_lines(cls, lines: list[LineCandidate]) -> Decimal:
        return cls.calculate_gross_from_lines(lines) - cls.calculate_deductions_from_lines(lines)

    @staticmethod
    def validate_line_signs(lines: list[LineCandidate]) -> list[str]:
        """Validate that every line amount is non-negative.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []
        for i, line in enumerate(lines):
            if line.amount < 0:
                errors.append(
                    f"Line {i} ({line.line_type.value} {line.code}) has negative amount {line.amount}"
                )
        return errors
