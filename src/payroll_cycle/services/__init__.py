"""Payroll cycle services."""

from payroll_cycle.services.state_machine import (
    PayrollRunStateMachine,
    RunStatus,
)
from payroll_cycle.services.incidence_aggregator import (
    IncidenceAggregator,
    PayCycleConfig,
    PayCycleWindow,
)
from payroll_cycle.services.payroll_run_service import PayrollRunService
from payroll_cycle.services.entry_builder import PayrollEntryBuilder
from payroll_cycle.services.query_service import EntryFilter, PayrollQueryService, RunFilter
from payroll_cycle.services.generation_service import PayrollGenerator
from payroll_cycle.services.types import EntryWithWorker, GenerationReport
from payroll_cycle.services.worker_directory import WorkerDirectory

__all__ = [
    "PayrollRunStateMachine",
    "RunStatus",
    "IncidenceAggregator",
    "PayCycleConfig",
    "PayCycleWindow",
    "PayrollRunService",
    "PayrollEntryBuilder",
    "EntryFilter",
    "PayrollQueryService",
    "RunFilter",
    "PayrollGenerator",
    "EntryWithWorker",
    "GenerationReport",
    "WorkerDirectory",
]
