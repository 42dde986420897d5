"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_cycle.config import Settings, get_settings
from payroll_cycle.database import init_db
from payroll_cycle.services.incidence_aggregator import PayCycleConfig


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the application session factory."""
    _, factory = init_db()
    return factory


async def get_db_session(
    factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_cycle_config(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PayCycleConfig:
    """Pay-cycle window configuration."""
    return PayCycleConfig(settings.cycle_start_day, settings.cycle_length_months)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
AppSettings = Annotated[Settings, Depends(get_settings)]
CycleConfig = Annotated[PayCycleConfig, Depends(get_cycle_config)]
