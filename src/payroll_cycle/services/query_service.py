"""Read-only queries over payroll runs and entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import Select, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.exceptions import InvalidInputError, StorageError
from payroll_cycle.models import PayrollEntry, PayrollRun, Worker
from payroll_cycle.services.entry_builder import validate_id
from payroll_cycle.services.incidence_aggregator import validate_month_year
from payroll_cycle.services.payroll_run_service import PayrollRunService
from payroll_cycle.services.state_machine import RunStatus
from payroll_cycle.services.types import EntryWithWorker


@dataclass(frozen=True)
class RunFilter:
    """Filters for listing payroll runs. Absent filters are ignored."""

    run_date: date | None = None
    month: int | None = None
    year: int | None = None

    def __post_init__(self) -> None:
        validate_month_year(self.month, self.year)


@dataclass(frozen=True)
class EntryFilter:
    """Filters for one worker's payroll entries, combined with AND.

    ``paid_only`` and ``unpaid_only`` are mutually exclusive; when both are
    set, ``paid_only`` wins.
    """

    worker_id: int
    current_only: bool = False
    paid_only: bool = False
    unpaid_only: bool = False
    month: int | None = None
    year: int | None = None

    def __post_init__(self) -> None:
        validate_id("worker_id", self.worker_id)
        validate_month_year(self.month, self.year)

    @property
    def status(self) -> RunStatus | None:
        """Run status the entries must belong to, if any."""
        if self.paid_only:
            return RunStatus.PAID
        if self.unpaid_only:
            return RunStatus.UNPAID
        return None


def _filter_by_month(stmt: Select, month: int | None, year: int | None) -> Select:
    if month is not None:
        stmt = stmt.where(extract("month", PayrollRun.run_date) == month)
    if year is not None:
        stmt = stmt.where(extract("year", PayrollRun.run_date) == year)
    return stmt


class PayrollQueryService:
    """Answers filtered questions over payroll runs and entries.

    Every query returns an empty list when nothing matches. Only a
    malformed filter raises (InvalidInputError).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _all(self, stmt: Select, operation: str) -> list:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(operation, exc) from exc
        return list(result.scalars().all())

    async def _rows(self, stmt: Select, operation: str) -> list:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(operation, exc) from exc
        return list(result.all())

    async def list_runs(self, filters: RunFilter | None = None) -> list[PayrollRun]:
        """Runs matching an exact date, a month and a year, newest first."""
        filters = filters or RunFilter()
        stmt = select(PayrollRun)
        if filters.run_date is not None:
            stmt = stmt.where(PayrollRun.run_date == filters.run_date)
        stmt = _filter_by_month(stmt, filters.month, filters.year)
        stmt = stmt.order_by(PayrollRun.run_date.desc(), PayrollRun.payroll_run_id.desc())
        return await self._all(stmt, "list payroll runs")

    async def get_run(self, payroll_run_id: int) -> PayrollRun:
        """Get a run by id, raising RunNotFoundError if absent."""
        validate_id("payroll_run_id", payroll_run_id)
        return await PayrollRunService(self.session).get_run(payroll_run_id)

    async def list_worker_entries(self, filters: EntryFilter) -> list[PayrollEntry]:
        """Entries of one worker, filtered by run recency, status and month."""
        stmt = (
            select(PayrollEntry)
            .join(PayrollRun, PayrollEntry.payroll_run_id == PayrollRun.payroll_run_id)
            .where(PayrollEntry.worker_id == filters.worker_id)
        )

        if filters.current_only:
            latest = select(func.max(PayrollRun.run_date)).scalar_subquery()
            stmt = stmt.where(PayrollRun.run_date == latest)

        status = filters.status
        if status is not None:
            stmt = stmt.where(PayrollRun.status == status.value)

        stmt = _filter_by_month(stmt, filters.month, filters.year)
        stmt = stmt.order_by(PayrollRun.run_date.desc(), PayrollEntry.payroll_entry_id)
        return await self._all(stmt, "list worker payroll entries")

    async def list_month_entries(self, month: int, year: int) -> list[EntryWithWorker]:
        """All workers' entries in runs of a month, joined with worker names."""
        if month is None:
            raise InvalidInputError("month", month, "is required")
        if year is None:
            raise InvalidInputError("year", year, "is required")
        validate_month_year(month, year)

        stmt = (
            select(PayrollEntry, Worker)
            .join(Worker, PayrollEntry.worker_id == Worker.worker_id)
            .join(PayrollRun, PayrollEntry.payroll_run_id == PayrollRun.payroll_run_id)
        )
        stmt = _filter_by_month(stmt, month, year)
        stmt = stmt.order_by(PayrollRun.run_date, Worker.last_name, Worker.first_name)
        rows = await self._rows(stmt, "list monthly payroll entries")
        return [EntryWithWorker.from_models(entry, worker) for entry, worker in rows]

    async def list_run_entries(self, payroll_run_id: int) -> list[EntryWithWorker]:
        """Entries of one run with worker names."""
        await self.get_run(payroll_run_id)
        stmt = (
            select(PayrollEntry, Worker)
            .join(Worker, PayrollEntry.worker_id == Worker.worker_id)
            .where(PayrollEntry.payroll_run_id == payroll_run_id)
            .order_by(Worker.last_name, Worker.first_name)
        )
        rows = await self._rows(stmt, "list payroll run entries")
        return [EntryWithWorker.from_models(entry, worker) for entry, worker in rows]
