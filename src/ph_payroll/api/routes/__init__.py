"""API routes."""

from ph_payroll.api.routes.health import router as health_router
from ph_payroll.api.routes.payrolls import router as payrolls_router

__all__ = ["payrolls_router", "health_router"]
