"""Payroll entry builder: base salary plus incidences for one worker and run."""

from __future__ import annotations

import calendar
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.exceptions import DuplicateEntryError, InvalidInputError, StorageError
from payroll_cycle.models import PayrollEntry
from payroll_cycle.services.incidence_aggregator import IncidenceAggregator, PayCycleConfig
from payroll_cycle.services.payroll_run_service import PayrollRunService
from payroll_cycle.services.types import EntryWithWorker
from payroll_cycle.services.worker_directory import WorkerDirectory

logger = logging.getLogger(__name__)


def validate_id(field: str, value: object) -> int:
    """Identifiers must be positive integers."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(field, value, "must be a positive integer")
    return value


def describe_entry(paid_month: date) -> str:
    """Human-readable details naming the calendar month being paid."""
    month_name = calendar.month_name[paid_month.month]
    return f"Payroll for month of {month_name}, plus incidences if applicable"


class PayrollEntryBuilder:
    """Builds and persists one payroll entry per (worker, run).

    Steps:
    1. Validate ids and load the worker and the run
    2. Refuse a second entry for the same worker and run
    3. Sum the worker's incidences over the pay-cycle window
    4. Snapshot the base salary and compute the total
    5. Persist the entry and refresh the run's derived amount

    Nothing is written if any step before the insert fails.
    """

    def __init__(self, session: AsyncSession, cycle: PayCycleConfig | None = None):
        self.session = session
        self.cycle = cycle or PayCycleConfig()
        self.directory = WorkerDirectory(session)
        self.aggregator = IncidenceAggregator(session)
        self.runs = PayrollRunService(session)

    async def find_entry(self, worker_id: int, payroll_run_id: int) -> PayrollEntry | None:
        """Existing entry for a worker in a run, if any."""
        try:
            result = await self.session.execute(
                select(PayrollEntry).where(
                    PayrollEntry.worker_id == worker_id,
                    PayrollEntry.payroll_run_id == payroll_run_id,
                )
            )
        except SQLAlchemyError as exc:
            raise StorageError("find payroll entry", exc) from exc
        return result.scalar_one_or_none()

    async def build_entry(
        self,
        worker_id: int,
        payroll_run_id: int,
        today: date | None = None,
    ) -> PayrollEntry:
        """Create the entry for ``worker_id`` in ``payroll_run_id``.

        The pay-cycle window and the month named in the details are taken
        from ``today`` when given, otherwise from the run's date.

        Raises:
            InvalidInputError: ids are not positive integers
            WorkerNotFoundError: the worker does not exist
            RunNotFoundError: the run does not exist
            DuplicateEntryError: the worker already has an entry in the run
            StorageError: the store failed; the session is rolled back
        """
        validate_id("worker_id", worker_id)
        validate_id("payroll_run_id", payroll_run_id)

        worker = await self.directory.get_worker(worker_id)
        run = await self.runs.get_run(payroll_run_id)

        existing = await self.find_entry(worker_id, payroll_run_id)
        if existing is not None:
            raise DuplicateEntryError(worker_id, payroll_run_id, existing.payroll_entry_id)

        reference_day = today or run.run_date
        window = self.cycle.window_for(reference_day)
        incidence_total = await self.aggregator.total_for_worker(worker_id, window)

        base_salary = worker.base_salary
        entry = PayrollEntry(
            base_salary=base_salary,
            incidence_total=incidence_total,
            total=base_salary + incidence_total,
            details=describe_entry(reference_day),
            worker_id=worker_id,
            payroll_run_id=payroll_run_id,
        )
        self.session.add(entry)

        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent builder for the same pair
            await self.session.rollback()
            raise DuplicateEntryError(worker_id, payroll_run_id) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError("create payroll entry", exc) from exc

        await self.runs.refresh_amount(payroll_run_id)

        logger.debug(
            "Built payroll entry %s for worker %s in run %s (window %s..%s, total %s)",
            entry.payroll_entry_id,
            worker_id,
            payroll_run_id,
            window.start,
            window.end,
            entry.total,
        )
        return entry

    async def build_entry_with_worker(
        self,
        worker_id: int,
        payroll_run_id: int,
        today: date | None = None,
    ) -> EntryWithWorker:
        """Same as build_entry, joined with the worker's name for display."""
        entry = await self.build_entry(worker_id, payroll_run_id, today)
        worker = await self.directory.get_worker(worker_id)
        return EntryWithWorker.from_models(entry, worker)
