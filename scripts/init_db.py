"""Create the payroll schema and optionally load demo data.

Usage:
    python -m scripts.init_db [--database-url URL] [--seed]

Creates any missing tables. With --seed, adds two workers, a few March
incidences and one UNPAID run, enough to try the API by hand.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import date

from payroll_cycle.config import settings
from payroll_cycle.database import create_all, get_engine, make_session_factory
from payroll_cycle.models import Incidence, PayrollRun, Worker


async def seed(session_factory) -> None:
    """Insert demo workers, incidences and a run."""
    async with session_factory() as session:
        maria = Worker(
            first_name="Maria",
            last_name="Lopez",
            base_salary=2_000_000,
            role="cook",
            active_since=date(2020, 1, 1),
        )
        jose = Worker(
            first_name="Jose",
            last_name="Ruiz",
            base_salary=1_500_000,
            role="waiter",
            active_since=date(2021, 6, 1),
        )
        session.add_all([maria, jose])
        await session.flush()

        session.add_all(
            [
                Incidence(
                    worker_id=maria.worker_id,
                    incidence_date=date(2024, 3, 1),
                    amount=50_000,
                    is_deduction=False,
                    reason="overtime",
                ),
                Incidence(
                    worker_id=maria.worker_id,
                    incidence_date=date(2024, 3, 5),
                    amount=20_000,
                    is_deduction=True,
                    reason="salary advance",
                ),
                PayrollRun(run_date=date(2024, 3, 20), amount=0, status="UNPAID"),
            ]
        )
        await session.commit()
        print(f"Seeded workers {maria.worker_id}, {jose.worker_id} and one March run")


async def init_db(database_url: str, with_seed: bool) -> None:
    """Create tables and optionally seed them."""
    print(f"Target database: {database_url.split('@')[1] if '@' in database_url else database_url}")

    engine = get_engine(database_url)
    try:
        await create_all(engine)
        print("Schema ready")
        if with_seed:
            await seed(make_session_factory(engine))
    finally:
        await engine.dispose()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create the payroll schema")
    parser.add_argument(
        "--database-url",
        type=str,
        default=settings.database_url,
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Load demo workers, incidences and a run",
    )

    args = parser.parse_args()

    asyncio.run(init_db(args.database_url, args.seed))


if __name__ == "__main__":
    main()
