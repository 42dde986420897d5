"""Result types shared by payroll services."""

from __future__ import annotations

from dataclasses import dataclass, field

from payroll_cycle.models import PayrollEntry, Worker


@dataclass(frozen=True)
class EntryWithWorker:
    """A payroll entry joined with the worker's display name."""

    payroll_entry_id: int
    payroll_run_id: int
    worker_id: int
    base_salary: int
    incidence_total: int | None
    total: int | None
    details: str | None
    first_name: str
    last_name: str

    @property
    def worker_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_models(cls, entry: PayrollEntry, worker: Worker) -> EntryWithWorker:
        return cls(
            payroll_entry_id=entry.payroll_entry_id,
            payroll_run_id=entry.payroll_run_id,
            worker_id=entry.worker_id,
            base_salary=entry.base_salary,
            incidence_total=entry.incidence_total,
            total=entry.total,
            details=entry.details,
            first_name=worker.first_name,
            last_name=worker.last_name,
        )


@dataclass
class GenerationReport:
    """Outcome of generating a payroll run and fanning out its entries.

    One worker's failure never blocks the others; failed worker ids are
    listed with the error that stopped each of them.
    """

    payroll_run_id: int
    entry_ids: list[int] = field(default_factory=list)
    failed_worker_ids: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed_worker_ids

    def record_failure(self, worker_id: int, error: BaseException) -> None:
        self.failed_worker_ids.append(worker_id)
        self.errors[worker_id] = str(error) or type(error).__name__
