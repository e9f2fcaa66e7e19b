"""Organization, employee, compensation and work schedule models."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ph_payroll.calculators.types import ScheduleRow
from ph_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ph_payroll.models.attendance import TimeEntry


class Organization(Base, TimestampMixin):
    """Employer organization."""

    __tablename__ = "organization"

    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    # Relationships
    employees: Mapped[list[Employee]] = relationship(back_populates="organization")


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_code: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "employee_code", name="employee_org_code_unique"),
    )

    # Relationships
    organization: Mapped[Organization] = relationship(back_populates="employees")
    compensations: Mapped[list[Compensation]] = relationship(back_populates="employee")
    work_schedule: Mapped[WorkSchedule | None] = relationship(back_populates="employee")
    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Compensation(Base, TimestampMixin):
    """Monthly base salary effective from a date."""

    __tablename__ = "compensation"

    compensation_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    base_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (CheckConstraint("base_salary >= 0", name="compensation_salary_check"),)

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="compensations")


class WorkSchedule(Base, TimestampMixin):
    """Per-employee schedule used for rest days, lateness and rate overrides."""

    __tablename__ = "work_schedule"

    work_schedule_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    default_start: Mapped[time | None] = mapped_column(nullable=True)
    default_end: Mapped[time | None] = mapped_column(nullable=True)
    work_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    rest_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    grace_period_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_late_deduction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    daily_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="work_schedule")

    def to_row(self) -> ScheduleRow:
        return ScheduleRow(
            default_start=self.default_start,
            default_end=self.default_end,
            work_days=tuple(self.work_days or ()),
            rest_days=tuple(self.rest_days or ()),
            grace_period_minutes=self.grace_period_minutes or 0,
            allow_late_deduction=bool(self.allow_late_deduction),
            daily_rate=self.daily_rate,
            hourly_rate=self.hourly_rate,
        )
