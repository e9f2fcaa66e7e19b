"""Payroll state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ph_payroll.models import Payroll


class PayrollStatus(str, Enum):
    """Payroll status values."""

    DRAFT = "DRAFT"
    COMPUTED = "COMPUTED"
    APPROVED = "APPROVED"
    RELEASED = "RELEASED"
    VOIDED = "VOIDED"


class PayrollAction(str, Enum):
    """Audit log actions."""

    GENERATED = "GENERATED"
    APPROVED = "APPROVED"
    RELEASED = "RELEASED"
    VOIDED = "VOIDED"
    RECALCULATED = "RECALCULATED"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = getattr(from_status, "value", from_status)
        self.to_status = getattr(to_status, "value", to_status)
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollStateMachine:
    """State machine for payroll status transitions.

    Allowed transitions:
    - DRAFT → COMPUTED
    - COMPUTED → DRAFT (recalculation reset)
    - COMPUTED → APPROVED
    - APPROVED → RELEASED
    - DRAFT / COMPUTED / APPROVED → VOIDED
    - RELEASED → VOIDED only when voiding released payrolls is enabled

    VOIDED is terminal.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.DRAFT: [PayrollStatus.COMPUTED, PayrollStatus.VOIDED],
        PayrollStatus.COMPUTED: [
            PayrollStatus.DRAFT,
            PayrollStatus.APPROVED,
            PayrollStatus.VOIDED,
        ],
        PayrollStatus.APPROVED: [PayrollStatus.RELEASED, PayrollStatus.VOIDED],
        PayrollStatus.RELEASED: [],
        PayrollStatus.VOIDED: [],  # Terminal state
    }

    # Statuses where recalculation is allowed
    CALCULATION_ALLOWED = {
        PayrollStatus.DRAFT,
        PayrollStatus.COMPUTED,
    }

    # Statuses where amounts are frozen
    RESULTS_IMMUTABLE = {
        PayrollStatus.APPROVED,
        PayrollStatus.RELEASED,
        PayrollStatus.VOIDED,
    }

    @classmethod
    def can_transition(
        cls, from_status: str, to_status: str, allow_void_released: bool = False
    ) -> bool:
        """Check if a transition is valid."""
        if (
            allow_void_released
            and from_status == PayrollStatus.RELEASED
            and to_status == PayrollStatus.VOIDED
        ):
            return True
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(
        cls, from_status: str, to_status: str, allow_void_released: bool = False
    ) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status, allow_void_released):
            raise InvalidTransitionError(
                from_status, to_status, cls._describe_requirement(from_status, to_status)
            )

    @classmethod
    def _describe_requirement(cls, from_status: str, to_status: str) -> str | None:
        if from_status == PayrollStatus.VOIDED:
            return "payroll is voided"
        if to_status == PayrollStatus.APPROVED:
            return f"payroll must be {PayrollStatus.COMPUTED.value} to approve"
        if to_status == PayrollStatus.RELEASED:
            return f"payroll must be {PayrollStatus.APPROVED.value} to release"
        if to_status == PayrollStatus.VOIDED and from_status == PayrollStatus.RELEASED:
            return "released payrolls cannot be voided"
        return None

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        """Check if recalculation is allowed in this status."""
        return status in cls.CALCULATION_ALLOWED

    @classmethod
    def are_results_immutable(cls, status: str) -> bool:
        """Check if amounts and line items are frozen."""
        return status in cls.RESULTS_IMMUTABLE

    @classmethod
    def get_next_statuses(
        cls, current_status: str, allow_void_released: bool = False
    ) -> list[str]:
        """Get list of valid next statuses from current status."""
        statuses = list(cls.VALID_TRANSITIONS.get(current_status, []))
        if allow_void_released and current_status == PayrollStatus.RELEASED:
            statuses.append(PayrollStatus.VOIDED)
        return statuses

    @classmethod
    def validate_payroll_for_transition(
        cls, payroll: Payroll, to_status: str, allow_void_released: bool = False
    ) -> list[str]:
        """Validate a payroll for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = payroll.status

        # Basic transition check
        if not cls.can_transition(from_status, to_status, allow_void_released):
            errors.append(
                f"Cannot transition from '{from_status}' to '{getattr(to_status, 'value', to_status)}'"
            )
            return errors

        if to_status == PayrollStatus.APPROVED:
            if payroll.net_pay != payroll.gross_pay - payroll.total_deductions:
                errors.append(
                    f"Net pay {payroll.net_pay} does not equal gross {payroll.gross_pay} "
                    f"minus deductions {payroll.total_deductions}"
                )

        return errors
