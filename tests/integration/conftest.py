"""Integration test fixtures: the API over an in-memory database."""

from collections.abc import AsyncGenerator
from dataclasses import replace
from datetime import date

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.api.app import create_app
from payroll_cycle.api.dependencies import get_session_factory
from payroll_cycle.config import get_settings
from tests.conftest import add_incidence, add_run, add_worker


def build_test_app(session_factory, **overrides) -> FastAPI:
    """App bound to the test database, scheduler off."""
    test_settings = replace(
        get_settings(), scheduler_enabled=False, max_concurrency=1, **overrides
    )
    app = create_app(test_settings)
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: test_settings
    return app


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=build_test_app(session_factory))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def seeded_db(session: AsyncSession) -> AsyncGenerator[dict, None]:
    """Two workers with March 2024 incidences and one UNPAID March run."""
    maria = await add_worker(session, first_name="Maria", last_name="Lopez")
    jose = await add_worker(session, first_name="Jose", last_name="Ruiz", base_salary=1_500_000)
    await add_incidence(session, maria, date(2024, 3, 1), 50_000, reason="overtime")
    await add_incidence(session, maria, date(2024, 3, 5), 20_000, is_deduction=True, reason="advance")
    march = await add_run(session, date(2024, 3, 20))
    await session.commit()

    yield {
        "maria_id": maria.worker_id,
        "jose_id": jose.worker_id,
        "march_run_id": march.payroll_run_id,
    }
