"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.config import Settings, get_settings
from ph_payroll.database import init_db
from ph_payroll.services.payroll_service import PayrollService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back on close.
    """
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_payroll_service(db: DbSession, settings: AppSettings) -> PayrollService:
    return PayrollService(db, settings)


PayrollServiceDep = Annotated[PayrollService, Depends(get_payroll_service)]
