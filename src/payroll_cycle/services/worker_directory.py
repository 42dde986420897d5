"""Read-only access to the worker directory."""

from __future__ import annotations

from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.exceptions import StorageError, WorkerNotFoundError
from payroll_cycle.models import Worker


class WorkerDirectory:
    """Worker lookups needed by payroll generation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_worker(self, worker_id: int) -> Worker:
        """Load a worker, raising WorkerNotFoundError if absent."""
        try:
            worker = await self.session.get(Worker, worker_id)
        except SQLAlchemyError as exc:
            raise StorageError("get worker", exc) from exc
        if worker is None:
            raise WorkerNotFoundError(worker_id)
        return worker

    async def list_active(self, on: date) -> list[Worker]:
        """Workers hired on or before ``on`` and not retired by then."""
        stmt = (
            select(Worker)
            .where(
                Worker.active_since <= on,
                or_(Worker.retired_on.is_(None), Worker.retired_on > on),
            )
            .order_by(Worker.worker_id)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError("list active workers", exc) from exc
        return list(result.scalars().all())
