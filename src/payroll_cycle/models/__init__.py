"""ORM models."""

from payroll_cycle.models.base import Base, TimestampMixin
from payroll_cycle.models.payroll import Incidence, PayrollEntry, PayrollRun, SchedulerMarker
from payroll_cycle.models.worker import Worker

__all__ = [
    "Base",
    "TimestampMixin",
    "Incidence",
    "PayrollEntry",
    "PayrollRun",
    "SchedulerMarker",
    "Worker",
]
