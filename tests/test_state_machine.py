"""Tests for payroll state machine."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from ph_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollStateMachine,
    PayrollStatus,
)


class TestPayrollStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # draft → computed
        assert PayrollStateMachine.can_transition("DRAFT", "COMPUTED") is True

        # computed → draft (recalculation reset)
        assert PayrollStateMachine.can_transition("COMPUTED", "DRAFT") is True

        # computed → approved → released
        assert PayrollStateMachine.can_transition("COMPUTED", "APPROVED") is True
        assert PayrollStateMachine.can_transition("APPROVED", "RELEASED") is True

        # void from any non-terminal, unreleased status
        for status in ("DRAFT", "COMPUTED", "APPROVED"):
            assert PayrollStateMachine.can_transition(status, "VOIDED") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't approve before computing
        assert PayrollStateMachine.can_transition("DRAFT", "APPROVED") is False

        # Can't release before approval
        assert PayrollStateMachine.can_transition("COMPUTED", "RELEASED") is False

        # No way back from approval
        assert PayrollStateMachine.can_transition("APPROVED", "COMPUTED") is False
        assert PayrollStateMachine.can_transition("RELEASED", "APPROVED") is False

        # Voided is terminal
        assert PayrollStateMachine.can_transition("VOIDED", "DRAFT") is False
        assert PayrollStateMachine.can_transition("VOIDED", "VOIDED") is False

    def test_enum_and_string_statuses_agree(self):
        assert PayrollStateMachine.can_transition(
            PayrollStatus.COMPUTED, PayrollStatus.APPROVED
        ) is True
        assert PayrollStateMachine.get_next_statuses("APPROVED") == [
            PayrollStatus.RELEASED,
            PayrollStatus.VOIDED,
        ]

    def test_void_released_is_configurable(self):
        assert PayrollStateMachine.can_transition("RELEASED", "VOIDED") is False
        assert PayrollStateMachine.can_transition(
            "RELEASED", "VOIDED", allow_void_released=True
        ) is True
        assert PayrollStateMachine.get_next_statuses("RELEASED") == []
        assert PayrollStateMachine.get_next_statuses(
            "RELEASED", allow_void_released=True
        ) == [PayrollStatus.VOIDED]

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayrollStateMachine.validate_transition("DRAFT", PayrollStatus.APPROVED)

        assert exc_info.value.from_status == "DRAFT"
        assert exc_info.value.to_status == "APPROVED"
        assert "COMPUTED" in exc_info.value.reason
        assert "PayrollStatus" not in str(exc_info.value)

    def test_can_calculate(self):
        """Test calculation allowed statuses."""
        assert PayrollStateMachine.can_calculate("DRAFT") is True
        assert PayrollStateMachine.can_calculate("COMPUTED") is True
        assert PayrollStateMachine.can_calculate("APPROVED") is False
        assert PayrollStateMachine.can_calculate("RELEASED") is False
        assert PayrollStateMachine.can_calculate("VOIDED") is False

    def test_results_immutable(self):
        assert PayrollStateMachine.are_results_immutable("COMPUTED") is False
        assert PayrollStateMachine.are_results_immutable("APPROVED") is True
        assert PayrollStateMachine.are_results_immutable("VOIDED") is True

    def test_approve_requires_consistent_totals(self):
        consistent = SimpleNamespace(
            status="COMPUTED",
            gross_pay=Decimal("1000.00"),
            total_deductions=Decimal("100.00"),
            net_pay=Decimal("900.00"),
        )
        broken = SimpleNamespace(
            status="COMPUTED",
            gross_pay=Decimal("1000.00"),
            total_deductions=Decimal("100.00"),
            net_pay=Decimal("950.00"),
        )

        assert PayrollStateMachine.validate_payroll_for_transition(consistent, "APPROVED") == []
        errors = PayrollStateMachine.validate_payroll_for_transition(broken, "APPROVED")
        assert len(errors) == 1
        assert "Net pay" in errors[0]
