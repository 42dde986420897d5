"""API routes."""

from payroll_cycle.api.routes.health import router as health_router
from payroll_cycle.api.routes.payroll_entries import router as payroll_entries_router
from payroll_cycle.api.routes.payroll_runs import router as payroll_runs_router

__all__ = ["health_router", "payroll_entries_router", "payroll_runs_router"]
