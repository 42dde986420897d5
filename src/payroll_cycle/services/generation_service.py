"""Payroll run generation with per-worker entry fan-out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_cycle.exceptions import PayrollError, StorageError
from payroll_cycle.models import PayrollEntry
from payroll_cycle.services.entry_builder import PayrollEntryBuilder
from payroll_cycle.services.incidence_aggregator import PayCycleConfig
from payroll_cycle.services.payroll_run_service import PayrollRunService
from payroll_cycle.services.types import GenerationReport
from payroll_cycle.services.worker_directory import WorkerDirectory

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PayrollGenerator:
    """Creates payroll runs and builds their entries.

    Each worker's entry is built in its own session and transaction, so a
    failure for one worker rolls back only that worker's work. Concurrent
    builds are bounded by ``max_concurrency``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cycle: PayCycleConfig | None = None,
        max_concurrency: int = 4,
        storage_timeout_seconds: float = 30.0,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.session_factory = session_factory
        self.cycle = cycle or PayCycleConfig()
        self.max_concurrency = max_concurrency
        self.storage_timeout_seconds = storage_timeout_seconds

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.storage_timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise StorageError(f"{operation} (timed out)", exc) from exc

    async def generate_entry_for_worker(
        self,
        worker_id: int,
        payroll_run_id: int,
        today: date | None = None,
    ) -> PayrollEntry:
        """Build and commit one worker's entry in a run."""
        async with self.session_factory() as session:
            try:
                builder = PayrollEntryBuilder(session, self.cycle)
                entry = await self._bounded(
                    "generate payroll entry",
                    builder.build_entry(worker_id, payroll_run_id, today),
                )
                await self._bounded("commit payroll entry", session.commit())
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StorageError("generate payroll entry", exc) from exc
            except Exception:
                await session.rollback()
                raise
            return entry

    async def create_run(self, run_date: date) -> tuple[int, list[int]]:
        """Commit a new UNPAID run and return its id with the active worker ids."""
        async with self.session_factory() as session:
            try:
                run = await self._bounded(
                    "create payroll run",
                    PayrollRunService(session).create_run(run_date),
                )
                workers = await self._bounded(
                    "list active workers",
                    WorkerDirectory(session).list_active(run_date),
                )
                await self._bounded("commit payroll run", session.commit())
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StorageError("create payroll run", exc) from exc
            except Exception:
                await session.rollback()
                raise
            return run.payroll_run_id, [w.worker_id for w in workers]

    async def refresh_run_amount(self, report: GenerationReport) -> None:
        """Recompute a generated run's amount once all entries are in.

        Entries committed concurrently may each have seen a partial sum. On
        failure the report is logged before the error propagates.
        """
        payroll_run_id = report.payroll_run_id
        async with self.session_factory() as session:
            try:
                await self._bounded(
                    "refresh payroll run amount",
                    PayrollRunService(session).refresh_amount(payroll_run_id),
                )
                await self._bounded("commit payroll run amount", session.commit())
            except StorageError:
                await session.rollback()
                self._log_refresh_failure(report)
                raise
            except SQLAlchemyError as exc:
                await session.rollback()
                self._log_refresh_failure(report)
                raise StorageError("refresh payroll run amount", exc) from exc

    @staticmethod
    def _log_refresh_failure(report: GenerationReport) -> None:
        logger.error(
            "Amount refresh failed for payroll run %s; entries %s, failed workers %s",
            report.payroll_run_id,
            report.entry_ids,
            report.failed_worker_ids,
        )

    async def generate_run(self, run_date: date, fan_out: bool = True) -> GenerationReport:
        """Create a run dated ``run_date`` and, with ``fan_out``, an entry per active worker.

        The run is committed before any entry is built, so whatever happens
        during fan-out the run exists as UNPAID. Per-worker failures are
        collected in the returned report instead of aborting the batch.
        """
        payroll_run_id, worker_ids = await self.create_run(run_date)
        report = GenerationReport(payroll_run_id=payroll_run_id)
        if not fan_out:
            return report

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def build(worker_id: int) -> None:
            async with semaphore:
                try:
                    entry = await self.generate_entry_for_worker(
                        worker_id, payroll_run_id, run_date
                    )
                except PayrollError as exc:
                    logger.warning(
                        "Payroll entry for worker %s in run %s failed: %s",
                        worker_id,
                        payroll_run_id,
                        exc,
                    )
                    report.record_failure(worker_id, exc)
                except Exception as exc:
                    logger.exception(
                        "Unexpected error building entry for worker %s in run %s",
                        worker_id,
                        payroll_run_id,
                    )
                    report.record_failure(worker_id, exc)
                else:
                    report.entry_ids.append(entry.payroll_entry_id)

        await asyncio.gather(*(build(worker_id) for worker_id in worker_ids))
        report.entry_ids.sort()
        report.failed_worker_ids.sort()

        await self.refresh_run_amount(report)

        if report.failed_worker_ids:
            logger.warning(
                "Payroll run %s generated with %d entries, failed workers: %s",
                payroll_run_id,
                len(report.entry_ids),
                report.failed_worker_ids,
            )
        else:
            logger.info(
                "Payroll run %s generated with %d entries",
                payroll_run_id,
                len(report.entry_ids),
            )
        return report
