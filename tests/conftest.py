"""Pytest fixtures for payroll cycle tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_cycle.database import create_all, make_session_factory
from payroll_cycle.models import Incidence, PayrollRun, Worker

# In-memory SQLite shared by every session of a test through StaticPool
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def add_worker(
    session: AsyncSession,
    first_name: str = "Maria",
    last_name: str = "Lopez",
    base_salary: int = 2_000_000,
    role: str = "cook",
    active_since: date = date(2020, 1, 1),
    retired_on: date | None = None,
) -> Worker:
    """Insert a worker and flush so it gets an id."""
    worker = Worker(
        first_name=first_name,
        last_name=last_name,
        base_salary=base_salary,
        role=role,
        active_since=active_since,
        retired_on=retired_on,
    )
    session.add(worker)
    await session.flush()
    return worker


async def add_incidence(
    session: AsyncSession,
    worker: Worker | None,
    incidence_date: date,
    amount: int,
    is_deduction: bool = False,
    reason: str = "",
) -> Incidence:
    """Insert an incidence (worker may be None)."""
    incidence = Incidence(
        worker_id=worker.worker_id if worker is not None else None,
        incidence_date=incidence_date,
        amount=amount,
        is_deduction=is_deduction,
        reason=reason,
    )
    session.add(incidence)
    await session.flush()
    return incidence


async def add_run(
    session: AsyncSession,
    run_date: date,
    status: str = "UNPAID",
    amount: int = 0,
) -> PayrollRun:
    """Insert a payroll run directly, bypassing the service."""
    run = PayrollRun(run_date=run_date, status=status, amount=amount)
    session.add(run)
    await session.flush()
    return run


@pytest_asyncio.fixture
async def test_worker(session: AsyncSession) -> Worker:
    """Worker with a base salary of 2,000,000."""
    return await add_worker(session)


@pytest_asyncio.fixture
async def test_run(session: AsyncSession) -> PayrollRun:
    """UNPAID run dated 2024-03-20 (window 2024-02-20..2024-03-20)."""
    return await add_run(session, date(2024, 3, 20))
