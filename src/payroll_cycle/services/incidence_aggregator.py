"""Incidence aggregation over pay-cycle windows."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.exceptions import InvalidInputError, StorageError
from payroll_cycle.models import Incidence


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _clamped_day(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def validate_month_year(month: int | None, year: int | None) -> None:
    """Raise InvalidInputError for a month outside 1-12 or a non-positive year."""
    if month is not None and not 1 <= month <= 12:
        raise InvalidInputError("month", month, "must be between 1 and 12")
    if year is not None and year < 1:
        raise InvalidInputError("year", year, "must be a positive year")


@dataclass(frozen=True)
class PayCycleWindow:
    """Closed date range [start, end] over which incidences are summed."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidInputError("window", (self.start, self.end), "start is after end")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @classmethod
    def for_month(cls, month: int, year: int) -> PayCycleWindow:
        """The whole calendar month."""
        validate_month_year(month, year)
        return cls(date(year, month, 1), _clamped_day(year, month, 31))


@dataclass(frozen=True)
class PayCycleConfig:
    """Pay-cycle boundary.

    The default cycle runs from the 20th of the previous month to the 20th
    of the current month, both days included.
    """

    start_day: int = 20
    length_months: int = 1

    def __post_init__(self) -> None:
        if not 1 <= self.start_day <= 31:
            raise InvalidInputError("start_day", self.start_day, "must be between 1 and 31")
        if self.length_months < 1:
            raise InvalidInputError("length_months", self.length_months, "must be at least 1")

    def window_for(self, today: date) -> PayCycleWindow:
        """Window of the cycle that closes in ``today``'s month."""
        start_year, start_month = _shift_month(today.year, today.month, -self.length_months)
        return PayCycleWindow(
            start=_clamped_day(start_year, start_month, self.start_day),
            end=_clamped_day(today.year, today.month, self.start_day),
        )


def sum_incidences(
    incidences: Iterable[Incidence],
    worker_id: int,
    window: PayCycleWindow,
) -> int:
    """Signed sum of in-memory incidences for one worker inside a window."""
    return sum(
        i.signed_amount
        for i in incidences
        if i.worker_id is not None
        and i.worker_id == worker_id
        and window.contains(i.incidence_date)
    )


class IncidenceAggregator:
    """Sums signed incidence amounts for one worker within a date window."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def total_for_worker(self, worker_id: int, window: PayCycleWindow) -> int:
        """Additions minus deductions for the worker's incidences in the window.

        Returns 0 when nothing matches.
        """
        signed = func.sum(
            case((Incidence.is_deduction, -Incidence.amount), else_=Incidence.amount)
        )
        stmt = select(signed).where(
            Incidence.worker_id == worker_id,
            Incidence.incidence_date >= window.start,
            Incidence.incidence_date <= window.end,
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError("aggregate incidences", exc) from exc
        return int(result.scalar() or 0)

    async def list_for_worker(
        self,
        worker_id: int,
        window: PayCycleWindow,
    ) -> list[Incidence]:
        """Incidences of a worker inside the window, oldest first."""
        stmt = (
            select(Incidence)
            .where(
                Incidence.worker_id == worker_id,
                Incidence.incidence_date >= window.start,
                Incidence.incidence_date <= window.end,
            )
            .order_by(Incidence.incidence_date, Incidence.incidence_id)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError("list incidences", exc) from exc
        return list(result.scalars().all())

    async def list_for_month(self, worker_id: int, month: int, year: int) -> list[Incidence]:
        """Incidences of a worker within one calendar month."""
        return await self.list_for_worker(worker_id, PayCycleWindow.for_month(month, year))
