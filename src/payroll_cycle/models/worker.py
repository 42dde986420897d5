"""Worker directory model.

Owned by the worker directory; payroll code only reads it.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_cycle.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from payroll_cycle.models.payroll import Incidence, PayrollEntry


class Worker(Base, TimestampMixin):
    """Worker with a base salary in currency minor units."""

    __tablename__ = "worker"

    worker_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    base_salary: Mapped[int] = mapped_column(BigInteger, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)
    active_since: Mapped[date] = mapped_column(Date, nullable=False)
    retired_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("base_salary >= 0", name="worker_base_salary_check"),
    )

    # Relationships
    incidences: Mapped[list[Incidence]] = relationship(back_populates="worker")
    payroll_entries: Mapped[list[PayrollEntry]] = relationship(back_populates="worker")

    def is_active(self, on: date) -> bool:
        """Whether the worker is employed (hired and not yet retired) on a date."""
        if self.active_since > on:
            return False
        return self.retired_on is None or self.retired_on > on
