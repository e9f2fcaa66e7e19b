"""Calendar and attendance models: holidays, time entries, breaks, requests."""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ph_payroll.calculators.types import (
    BreakRow,
    HolidayRow,
    HolidayType,
    LeaveRow,
    RequestStatus,
    TimeEntryRow,
    TimeEntryStatus,
)
from ph_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ph_payroll.models.organization import Employee


class Holiday(Base, TimestampMixin):
    """Calendar holiday, or a per-employee override when employee_id is set."""

    __tablename__ = "holiday"

    holiday_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Attribute named after the column; annotate via the module alias.
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('REGULAR', 'SPECIAL_NON_WORKING', 'SPECIAL_WORKING', 'COMPANY', 'LGU')",
            name="holiday_type_check",
        ),
    )

    def to_row(self) -> HolidayRow:
        return HolidayRow(
            holiday_id=self.holiday_id,
            date=self.date,
            type=HolidayType(self.type),
            is_recurring=self.is_recurring,
            employee_id=self.employee_id,
            name=self.name,
        )


class TimeEntry(Base, TimestampMixin):
    """Clock-in / clock-out record for one work date."""

    __tablename__ = "time_entry"

    time_entry_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in_at: Mapped[datetime] = mapped_column(nullable=False)
    clock_out_at: Mapped[datetime | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="OPEN")

    __table_args__ = (
        CheckConstraint("status IN ('OPEN', 'CLOSED')", name="time_entry_status_check"),
        CheckConstraint(
            "clock_out_at IS NULL OR clock_out_at >= clock_in_at",
            name="time_entry_clock_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="time_entries")
    breaks: Mapped[list[TimeBreak]] = relationship(
        back_populates="time_entry", cascade="all, delete-orphan"
    )

    def to_row(self) -> TimeEntryRow:
        return TimeEntryRow(
            entry_id=self.time_entry_id,
            employee_id=self.employee_id,
            work_date=self.work_date,
            clock_in_at=self.clock_in_at,
            clock_out_at=self.clock_out_at,
            status=TimeEntryStatus(self.status),
        )


class TimeBreak(Base, TimestampMixin):
    """Explicit break taken during a time entry."""

    __tablename__ = "time_break"

    time_break_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    time_entry_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("time_entry.time_entry_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    break_start_at: Mapped[datetime] = mapped_column(nullable=False)
    break_end_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    time_entry: Mapped[TimeEntry] = relationship(back_populates="breaks")

    def to_row(self) -> BreakRow:
        return BreakRow(
            break_start_at=self.break_start_at,
            break_end_at=self.break_end_at,
            is_paid=self.is_paid,
        )


class OvertimeRequest(Base, TimestampMixin):
    """Overtime pre-approval for a work date."""

    __tablename__ = "overtime_request"

    overtime_request_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    approved_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RequestStatus.PENDING.value
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')",
            name="overtime_request_status_check",
        ),
        CheckConstraint("approved_minutes >= 0", name="overtime_request_minutes_check"),
    )


class LeaveRequest(Base, TimestampMixin):
    """Leave covering an inclusive date range."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RequestStatus.PENDING.value
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')",
            name="leave_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )

    def to_row(self) -> LeaveRow:
        return LeaveRow(
            start_date=self.start_date,
            end_date=self.end_date,
            status=RequestStatus(self.status),
        )
