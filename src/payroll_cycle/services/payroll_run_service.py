"""Payroll run service - creation and status lifecycle of payroll runs."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from payroll_cycle.exceptions import AlreadyPaidError, RunNotFoundError, StorageError
from payroll_cycle.models import PayrollEntry, PayrollRun
from payroll_cycle.services.state_machine import PayrollRunStateMachine, RunStatus

logger = logging.getLogger(__name__)


class PayrollRunService:
    """Service for managing the payroll run lifecycle.

    Operations:
    - create_run: New run dated ``run_date``, always UNPAID
    - mark_paid: UNPAID → PAID, AlreadyPaidError if already paid
    - reset_to_unpaid: PAID → UNPAID administrative reversal, always succeeds
    - delete_run: logical delete, same effect as reset_to_unpaid
    - refresh_amount: recompute the run amount from its entries
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_run(self, payroll_run_id: int) -> PayrollRun:
        """Load a payroll run, raising RunNotFoundError if absent."""
        try:
            run = await self.session.get(PayrollRun, payroll_run_id)
        except SQLAlchemyError as exc:
            raise StorageError("get payroll run", exc) from exc
        if run is None:
            raise RunNotFoundError(payroll_run_id)
        return run

    async def create_run(self, run_date: date, status: Any = None) -> PayrollRun:
        """Create a payroll run with a zero amount.

        ``status`` is optional; if supplied it must be a valid status and
        must be UNPAID. Invalid values raise InvalidStatusError.
        """
        initial = PayrollRunStateMachine.initial_status(status)
        run = PayrollRun(run_date=run_date, amount=0, status=initial.value)
        self.session.add(run)
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError("create payroll run", exc) from exc

        logger.info("Created payroll run %s dated %s", run.payroll_run_id, run_date)
        return run

    async def mark_paid(self, payroll_run_id: int) -> PayrollRun:
        """Transition a run from UNPAID to PAID.

        Raises AlreadyPaidError without touching the run when it is
        already PAID.
        """
        run = await self.get_run(payroll_run_id)
        PayrollRunStateMachine.validate_payment(payroll_run_id, run.status)

        # Conditional update so two concurrent payers cannot both succeed
        try:
            result = await self.session.execute(
                update(PayrollRun)
                .where(
                    PayrollRun.payroll_run_id == payroll_run_id,
                    PayrollRun.status == RunStatus.UNPAID.value,
                )
                .values(status=RunStatus.PAID.value)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise StorageError("mark payroll run paid", exc) from exc

        if result.rowcount == 0:
            await self.session.refresh(run)
            raise AlreadyPaidError(payroll_run_id)

        set_committed_value(run, "status", RunStatus.PAID.value)
        logger.info("Payroll run %s marked %s", payroll_run_id, RunStatus.PAID.value)
        return run

    async def reset_to_unpaid(self, payroll_run_id: int) -> PayrollRun:
        """Set a run back to UNPAID regardless of its current status."""
        run = await self.get_run(payroll_run_id)
        previous = run.status
        run.status = RunStatus.UNPAID.value
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError("reset payroll run", exc) from exc

        if PayrollRunStateMachine.can_transition(previous, RunStatus.UNPAID):
            logger.info(
                "Payroll run %s reset from %s to %s",
                payroll_run_id,
                previous,
                RunStatus.UNPAID.value,
            )
        return run

    async def delete_run(self, payroll_run_id: int) -> PayrollRun:
        """Logical delete. Runs are never removed; they go back to UNPAID."""
        return await self.reset_to_unpaid(payroll_run_id)

    async def compute_amount(self, payroll_run_id: int) -> int:
        """Sum of the totals of all entries in a run."""
        try:
            result = await self.session.execute(
                select(func.coalesce(func.sum(PayrollEntry.total), 0)).where(
                    PayrollEntry.payroll_run_id == payroll_run_id
                )
            )
        except SQLAlchemyError as exc:
            raise StorageError("compute payroll run amount", exc) from exc
        return int(result.scalar() or 0)

    async def refresh_amount(self, payroll_run_id: int) -> int:
        """Store the derived run amount (sum of entry totals) on the run."""
        entries_total = (
            select(func.coalesce(func.sum(PayrollEntry.total), 0))
            .where(PayrollEntry.payroll_run_id == payroll_run_id)
            .scalar_subquery()
        )
        try:
            await self.session.execute(
                update(PayrollRun)
                .where(PayrollRun.payroll_run_id == payroll_run_id)
                .values(amount=entries_total)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise StorageError("refresh payroll run amount", exc) from exc

        amount = await self.compute_amount(payroll_run_id)
        run = await self.session.get(PayrollRun, payroll_run_id)
        if run is not None:
            set_committed_value(run, "amount", amount)
        return amount
