"""Incidence, payroll run and payroll entry models."""

from __future__ import annotations

from datetime import date

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_cycle.models.base import Base, TimestampMixin
from payroll_cycle.models.worker import Worker


class Incidence(Base, TimestampMixin):
    """Dated monetary adjustment (bonus or penalty) for a worker.

    The amount is stored positive; ``is_deduction`` decides the sign.
    Incidences without a worker never take part in aggregation.
    """

    __tablename__ = "incidence"

    incidence_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    incidence_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_deduction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    worker_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("worker.worker_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="incidence_amount_check"),
    )

    # Relationships
    worker: Mapped[Worker | None] = relationship(back_populates="incidences")

    @property
    def signed_amount(self) -> int:
        """Amount with the deduction sign applied."""
        return -self.amount if self.is_deduction else self.amount


class PayrollRun(Base, TimestampMixin):
    """One generated pay period with its payment status."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="UNPAID")

    __table_args__ = (
        CheckConstraint(
            "status IN ('UNPAID', 'PAID')",
            name="payroll_run_status_check",
        ),
    )

    # Relationships
    entries: Mapped[list[PayrollEntry]] = relationship(back_populates="payroll_run")


class PayrollEntry(Base, TimestampMixin):
    """Per-worker result inside a payroll run.

    ``base_salary`` is a snapshot taken when the entry is built, so later
    salary changes never rewrite history.
    """

    __tablename__ = "payroll_entry"

    payroll_entry_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_salary: Mapped[int] = mapped_column(BigInteger, nullable=False)
    incidence_total: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    worker_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("worker.worker_id", ondelete="RESTRICT"),
        nullable=False,
    )
    payroll_run_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payroll_run.payroll_run_id", ondelete="RESTRICT"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("worker_id", "payroll_run_id", name="payroll_entry_worker_run_unique"),
    )

    # Relationships
    worker: Mapped[Worker] = relationship(back_populates="payroll_entries")
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="entries")


class SchedulerMarker(Base):
    """Last day a scheduled job fired; survives process restarts."""

    __tablename__ = "scheduler_marker"

    job_name: Mapped[str] = mapped_column(String, primary_key=True)
    last_fired_on: Mapped[date] = mapped_column(Date, nullable=False)
