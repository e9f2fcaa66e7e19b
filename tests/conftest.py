"""Pytest fixtures for payroll engine tests."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ph_payroll.api.app import create_app
from ph_payroll.api.dependencies import get_db_session
from ph_payroll.config import Settings, get_settings
from ph_payroll.models import (
    Base,
    Compensation,
    Employee,
    Organization,
    PagibigRate,
    PayRule,
    PhilhealthRate,
    SSSRate,
    TaxBracket,
    TimeEntry,
    WorkSchedule,
)

# In-memory SQLite shared by every connection of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

RATES_EFFECTIVE = date(2024, 1, 1)

# Monday..Friday of a regular week
WEEK_START = date(2024, 6, 3)
WEEK_END = date(2024, 6, 7)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test-1.0.0",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        allow_void_released=False,
        working_days_per_year=313,
        hours_per_day=8,
    )


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def organization(session: AsyncSession) -> Organization:
    org = Organization(organization_id=uuid4(), name="Test Company PH")
    session.add(org)
    await session.flush()
    return org


@pytest.fixture
async def employee(session: AsyncSession, organization: Organization) -> Employee:
    """Employee earning 16,000 a month on a Monday-Friday 08:00-17:00 schedule."""
    emp = Employee(
        employee_id=uuid4(),
        organization_id=organization.organization_id,
        employee_code="EMP-001",
        first_name="Juan",
        last_name="Dela Cruz",
    )
    session.add(emp)
    await session.flush()

    session.add(
        Compensation(
            employee_id=emp.employee_id,
            base_salary=Decimal("16000.00"),
            effective_date=date(2024, 1, 1),
        )
    )
    session.add(
        WorkSchedule(
            employee_id=emp.employee_id,
            default_start=time(8, 0),
            default_end=time(17, 0),
            work_days=["MON", "TUE", "WED", "THU", "FRI"],
            rest_days=["SAT", "SUN"],
            grace_period_minutes=5,
            allow_late_deduction=True,
        )
    )
    await session.flush()
    return emp


@pytest.fixture
async def rate_tables(session: AsyncSession, organization: Organization) -> None:
    """Contribution and tax tables.

    PhilHealth 2.75%, SSS 4.5% below 20,000 and capped above, Pag-IBIG 2%
    capped at 100, and a zero-rate tax bracket up to 20,833.
    """
    org_id = organization.organization_id
    session.add_all(
        [
            PhilhealthRate(
                organization_id=org_id,
                min_salary=Decimal("0"),
                max_salary=None,
                employee_rate=Decimal("0.0275"),
                employer_rate=Decimal("0.0275"),
                effective_from=RATES_EFFECTIVE,
            ),
            SSSRate(
                organization_id=org_id,
                min_salary=Decimal("0"),
                max_salary=Decimal("19999.99"),
                employee_rate=Decimal("0.045"),
                employer_rate=Decimal("0.095"),
                ec_rate=Decimal("0.001"),
                effective_from=RATES_EFFECTIVE,
            ),
            SSSRate(
                organization_id=org_id,
                min_salary=Decimal("20000"),
                max_salary=None,
                employee_rate=Decimal("0.045"),
                employer_rate=Decimal("0.095"),
                ec_rate=Decimal("0.001"),
                effective_from=RATES_EFFECTIVE,
            ),
            PagibigRate(
                organization_id=org_id,
                min_salary=Decimal("0"),
                max_salary=None,
                employee_rate=Decimal("0.02"),
                employer_rate=Decimal("0.02"),
                effective_from=RATES_EFFECTIVE,
            ),
            TaxBracket(
                organization_id=org_id,
                min_salary=Decimal("0"),
                max_salary=Decimal("20832.99"),
                base_tax=Decimal("0"),
                rate=Decimal("0"),
                effective_from=RATES_EFFECTIVE,
            ),
            TaxBracket(
                organization_id=org_id,
                min_salary=Decimal("20833"),
                max_salary=Decimal("33332.99"),
                base_tax=Decimal("0"),
                rate=Decimal("0.15"),
                effective_from=RATES_EFFECTIVE,
            ),
            TaxBracket(
                organization_id=org_id,
                min_salary=Decimal("33333"),
                max_salary=None,
                base_tax=Decimal("1875"),
                rate=Decimal("0.20"),
                effective_from=RATES_EFFECTIVE,
            ),
        ]
    )
    await session.flush()


# (day_type, holiday_type, regular, overtime, night_diff)
PAY_RULES = [
    ("REGULAR", None, "1.00", "1.25", "0.10"),
    ("REST", None, "1.30", "1.69", "0.10"),
    ("HOLIDAY", None, "1.30", "1.69", "0.10"),
    ("HOLIDAY", "REGULAR", "2.00", "2.60", "0.10"),
]


@pytest.fixture
async def pay_rules(session: AsyncSession, organization: Organization) -> None:
    for day_type, holiday_type, regular, overtime, night in PAY_RULES:
        for component, multiplier in (
            ("REGULAR", regular),
            ("OVERTIME", overtime),
            ("NIGHT_DIFF", night),
        ):
            session.add(
                PayRule(
                    organization_id=organization.organization_id,
                    day_type=day_type,
                    holiday_type=holiday_type,
                    applies_to=component,
                    multiplier=Decimal(multiplier),
                    effective_from=RATES_EFFECTIVE,
                )
            )
    await session.flush()


@pytest.fixture
def make_entry(session: AsyncSession):
    """Factory adding a closed time entry for an employee."""

    async def _make(
        employee: Employee,
        work_date: date,
        clock_in: time,
        clock_out: time,
        next_day: bool = False,
        status: str = "CLOSED",
    ) -> TimeEntry:
        out_date = date.fromordinal(work_date.toordinal() + 1) if next_day else work_date
        entry = TimeEntry(
            employee_id=employee.employee_id,
            work_date=work_date,
            clock_in_at=datetime.combine(work_date, clock_in),
            clock_out_at=datetime.combine(out_date, clock_out) if status == "CLOSED" else None,
            status=status,
        )
        session.add(entry)
        await session.flush()
        return entry

    return _make


@pytest.fixture
async def payroll_setup(employee, rate_tables, pay_rules, make_entry) -> Employee:
    """Employee with one full regular day in the test week."""
    await make_entry(employee, WEEK_START, time(8, 0), time(17, 0))
    return employee


@pytest.fixture
async def client(session: AsyncSession, settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test session."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
