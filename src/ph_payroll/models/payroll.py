"""Payroll record, line item and audit log models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ph_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ph_payroll.models.organization import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===== Payroll =====


class Payroll(Base, TimestampMixin):
    """One employee's payroll for one period."""

    __tablename__ = "payroll"

    payroll_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    taxable_income: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    tax_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    philhealth_deduction: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=0
    )
    sss_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    pagibig_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    late_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    undertime_deduction: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=0
    )
    absence_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    calculation_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    engine_version: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    released_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'COMPUTED', 'APPROVED', 'RELEASED', 'VOIDED')",
            name="payroll_status_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_period_check"),
        # At most one live payroll per employee and period.
        Index(
            "payroll_employee_period_live_unique",
            "employee_id",
            "period_start",
            "period_end",
            unique=True,
            postgresql_where=text("status != 'VOIDED'"),
            sqlite_where=text("status != 'VOIDED'"),
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship()
    earnings: Mapped[list[PayrollEarning]] = relationship(
        back_populates="payroll", cascade="all, delete-orphan"
    )
    deductions: Mapped[list[Deduction]] = relationship(
        back_populates="payroll", cascade="all, delete-orphan"
    )
    logs: Mapped[list[PayrollLog]] = relationship(back_populates="payroll")


class PayrollEarning(Base, TimestampMixin):
    """Itemized earning on a payroll."""

    __tablename__ = "payroll_earning"

    payroll_earning_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    payroll_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payroll.payroll_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 6), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    line_hash: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('BASE_SALARY', 'OVERTIME', 'NIGHT_DIFFERENTIAL')",
            name="payroll_earning_type_check",
        ),
    )

    # Relationships
    payroll: Mapped[Payroll] = relationship(back_populates="earnings")


class Deduction(Base, TimestampMixin):
    """Itemized statutory or policy deduction on a payroll."""

    __tablename__ = "deduction"

    deduction_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    payroll_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payroll.payroll_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    line_hash: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('TAX', 'PHILHEALTH', 'SSS', 'PAGIBIG', 'LATE', 'UNDERTIME', 'ABSENCE')",
            name="deduction_type_check",
        ),
    )

    # Relationships
    payroll: Mapped[Payroll] = relationship(back_populates="deductions")


# ===== Audit =====


class PayrollLog(Base):
    """Append-only payroll audit trail entry."""

    __tablename__ = "payroll_log"

    payroll_log_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    payroll_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payroll.payroll_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String, nullable=False)
    previous_status: Mapped[str | None] = mapped_column(String, nullable=True)
    new_status: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "action IN ('GENERATED', 'APPROVED', 'RELEASED', 'VOIDED', 'RECALCULATED')",
            name="payroll_log_action_check",
        ),
    )

    # Relationships
    payroll: Mapped[Payroll] = relationship(back_populates="logs")
