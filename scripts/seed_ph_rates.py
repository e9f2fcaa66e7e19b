"""Seed script for Philippine statutory rate tables and pay rules.

Run with:
    python scripts/seed_ph_rates.py --organization "Acme Philippines" [--create-tables]

Creates the organization if needed, then the 2024 BIR withholding brackets,
SSS, PhilHealth and Pag-IBIG rows and the DOLE premium pay multipliers.
Schemes that already have rows for the organization are skipped.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.calculators.rate_resolver import RATE_MODELS
from ph_payroll.calculators.types import DayType, HolidayType, PayComponent, RateScheme
from ph_payroll.config import configure_logging
from ph_payroll.database import dispose_db, get_session, init_db
from ph_payroll.models import Base, Organization, PayRule
from ph_payroll.services.rate_management import RateManagementService

EFFECTIVE_FROM = date(2024, 1, 1)

# Monthly BIR withholding table (TRAIN law, 2023 onwards)
TAX_BRACKETS = [
    # (min, max, base_tax, rate)
    ("0", "20832.99", "0", "0"),
    ("20833", "33332.99", "0", "0.15"),
    ("33333", "66666.99", "1875", "0.20"),
    ("66667", "166666.99", "8541.80", "0.25"),
    ("166667", "666666.99", "33541.80", "0.30"),
    ("666667", None, "183541.80", "0.35"),
]

# Top SSS bracket caps the monthly salary credit at 30,000
SSS_ROWS = [
    # (min, max, employee, employer, ec)
    ("0", "14999.99", "0.045", "0.095", "0.0007"),
    ("15000", "29999.99", "0.045", "0.095", "0.0010"),
    ("30000", None, "0.045", "0.095", "0.0010"),
]

PHILHEALTH_ROWS = [("0", None, "0.025", "0.025")]

PAGIBIG_ROWS = [
    ("0", "1500", "0.01", "0.02"),
    ("1500.01", None, "0.02", "0.02"),
]

NIGHT_DIFF = "0.10"

# (day_type, holiday_type, regular, overtime)
PAY_MULTIPLIERS = [
    (DayType.REGULAR, None, "1.00", "1.25"),
    (DayType.REST, None, "1.30", "1.69"),
    (DayType.HOLIDAY, None, "1.30", "1.69"),
    (DayType.HOLIDAY, HolidayType.REGULAR, "2.00", "2.60"),
    (DayType.HOLIDAY, HolidayType.SPECIAL_NON_WORKING, "1.30", "1.69"),
    (DayType.HOLIDAY, HolidayType.SPECIAL_WORKING, "1.00", "1.25"),
]


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


async def get_or_create_organization(session: AsyncSession, name: str) -> Organization:
    result = await session.execute(select(Organization).where(Organization.name == name))
    org = result.scalar_one_or_none()
    if org is None:
        org = Organization(name=name)
        session.add(org)
        await session.flush()
        print(f"Created organization {name} ({org.organization_id})")
    return org


async def _has_rows(session: AsyncSession, model, organization_id: UUID) -> bool:
    count = await session.scalar(
        select(func.count()).select_from(model).where(model.organization_id == organization_id)
    )
    return bool(count)


async def seed_rates(session: AsyncSession, organization_id: UUID) -> None:
    """Create the four government rate tables."""
    rates = RateManagementService(session)
    tables = {
        RateScheme.TAX: [
            dict(min_salary=lo, max_salary=hi, base_tax=Decimal(base), rate=Decimal(rate))
            for lo, hi, base, rate in TAX_BRACKETS
        ],
        RateScheme.SSS: [
            dict(
                min_salary=lo,
                max_salary=hi,
                employee_rate=Decimal(ee),
                employer_rate=Decimal(er),
                ec_rate=Decimal(ec),
            )
            for lo, hi, ee, er, ec in SSS_ROWS
        ],
        RateScheme.PHILHEALTH: [
            dict(min_salary=lo, max_salary=hi, employee_rate=Decimal(ee), employer_rate=Decimal(er))
            for lo, hi, ee, er in PHILHEALTH_ROWS
        ],
        RateScheme.PAGIBIG: [
            dict(min_salary=lo, max_salary=hi, employee_rate=Decimal(ee), employer_rate=Decimal(er))
            for lo, hi, ee, er in PAGIBIG_ROWS
        ],
    }

    for scheme, rows in tables.items():
        if await _has_rows(session, RATE_MODELS[scheme], organization_id):
            print(f"{scheme.value} rows already exist, skipping...")
            continue
        for fields in rows:
            await rates.add_rate(
                scheme,
                organization_id,
                min_salary=Decimal(fields.pop("min_salary")),
                max_salary=_dec(fields.pop("max_salary")),
                effective_from=EFFECTIVE_FROM,
                **fields,
            )
        print(f"Created {len(rows)} {scheme.value} rows")


async def seed_pay_rules(session: AsyncSession, organization_id: UUID) -> None:
    """Create premium pay multipliers for every day classification."""
    if await _has_rows(session, PayRule, organization_id):
        print("Pay rules already exist, skipping...")
        return

    count = 0
    for day_type, holiday_type, regular, overtime in PAY_MULTIPLIERS:
        for component, multiplier in (
            (PayComponent.REGULAR, regular),
            (PayComponent.OVERTIME, overtime),
            (PayComponent.NIGHT_DIFF, NIGHT_DIFF),
        ):
            session.add(
                PayRule(
                    organization_id=organization_id,
                    day_type=day_type.value,
                    holiday_type=holiday_type.value if holiday_type else None,
                    applies_to=component.value,
                    multiplier=Decimal(multiplier),
                    effective_from=EFFECTIVE_FROM,
                )
            )
            count += 1
    await session.flush()
    print(f"Created {count} pay rules")


async def main(name: str, create_tables: bool = False) -> None:
    configure_logging()
    if create_tables:
        engine, _ = init_db()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("Created tables")

    async with get_session() as session:
        org = await get_or_create_organization(session, name)
        await seed_rates(session, org.organization_id)
        await seed_pay_rules(session, org.organization_id)
    await dispose_db()
    print("Seeding complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed PH statutory rates and pay rules")
    parser.add_argument("--organization", default="Demo Organization", help="Organization name")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before seeding",
    )
    args = parser.parse_args()
    asyncio.run(main(args.organization, args.create_tables))
