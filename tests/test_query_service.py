"""Tests for payroll queries."""

from datetime import date

import pytest
import pytest_asyncio

from payroll_cycle.exceptions import InvalidInputError, RunNotFoundError
from payroll_cycle.services.entry_builder import PayrollEntryBuilder
from payroll_cycle.services.query_service import EntryFilter, PayrollQueryService, RunFilter
from tests.conftest import add_run, add_worker


@pytest_asyncio.fixture
async def history(session, test_worker):
    """Three runs for one worker: Jan 2024 PAID, Feb 2024 PAID, Mar 2024 UNPAID."""
    january = await add_run(session, date(2024, 1, 20), status="PAID")
    february = await add_run(session, date(2024, 2, 20), status="PAID")
    march = await add_run(session, date(2024, 3, 20))

    builder = PayrollEntryBuilder(session)
    entries = {}
    for run in (january, february, march):
        entry = await builder.build_entry(test_worker.worker_id, run.payroll_run_id)
        entries[run.run_date.month] = entry.payroll_entry_id
    return {"runs": (january, february, march), "entries": entries}


def entry_ids(entries) -> list[int]:
    return [e.payroll_entry_id for e in entries]


class TestRunQueries:
    """Test listing runs."""

    async def test_list_all_newest_first(self, session, history):
        runs = await PayrollQueryService(session).list_runs()

        assert [r.run_date for r in runs] == [
            date(2024, 3, 20),
            date(2024, 2, 20),
            date(2024, 1, 20),
        ]

    async def test_filter_by_exact_date(self, session, history):
        runs = await PayrollQueryService(session).list_runs(RunFilter(run_date=date(2024, 2, 20)))

        assert [r.payroll_run_id for r in runs] == [history["runs"][1].payroll_run_id]

    async def test_filter_by_month_and_year(self, session, history):
        await add_run(session, date(2023, 3, 20))
        service = PayrollQueryService(session)

        assert len(await service.list_runs(RunFilter(month=3))) == 2
        assert len(await service.list_runs(RunFilter(month=3, year=2024))) == 1
        assert len(await service.list_runs(RunFilter(year=2023))) == 1

    async def test_no_match_is_empty(self, session, history):
        runs = await PayrollQueryService(session).list_runs(RunFilter(month=7, year=2024))

        assert runs == []

    async def test_get_run(self, session, history):
        march = history["runs"][2]

        run = await PayrollQueryService(session).get_run(march.payroll_run_id)

        assert run.payroll_run_id == march.payroll_run_id

    async def test_get_missing_run(self, session):
        with pytest.raises(RunNotFoundError):
            await PayrollQueryService(session).get_run(12345)


class TestWorkerEntryQueries:
    """Test a worker's entries by recency, status and month."""

    async def test_all_entries(self, session, test_worker, history):
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id)
        )

        assert len(entries) == 3

    async def test_current_run_only(self, session, test_worker, history):
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, current_only=True)
        )

        assert entry_ids(entries) == [history["entries"][3]]

    async def test_current_run_without_worker_entry(self, session, test_worker, history):
        """A newer run the worker is not part of hides older runs."""
        await add_run(session, date(2024, 4, 20))

        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, current_only=True)
        )

        assert entries == []

    async def test_paid_only(self, session, test_worker, history):
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, paid_only=True)
        )

        assert sorted(entry_ids(entries)) == sorted(
            [history["entries"][1], history["entries"][2]]
        )

    async def test_unpaid_only(self, session, test_worker, history):
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, unpaid_only=True)
        )

        assert entry_ids(entries) == [history["entries"][3]]

    async def test_paid_wins_over_unpaid(self, session, test_worker, history):
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, paid_only=True, unpaid_only=True)
        )

        assert len(entries) == 2

    async def test_paid_in_unpaid_month_is_empty(self, session, test_worker, history):
        """month=3, year=2024, paid=True over an UNPAID March run returns nothing."""
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, paid_only=True, month=3, year=2024)
        )

        assert entries == []

    async def test_month_and_year(self, session, test_worker, history):
        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=test_worker.worker_id, month=1, year=2024)
        )

        assert entry_ids(entries) == [history["entries"][1]]

    async def test_other_worker_sees_nothing(self, session, history):
        stranger = await add_worker(session, first_name="Ana", last_name="Diaz")

        entries = await PayrollQueryService(session).list_worker_entries(
            EntryFilter(worker_id=stranger.worker_id)
        )

        assert entries == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"worker_id": 1, "month": 13},
            {"worker_id": 1, "month": 0},
            {"worker_id": 1, "year": -1},
            {"worker_id": 0},
        ],
    )
    def test_malformed_filter(self, kwargs):
        with pytest.raises(InvalidInputError):
            EntryFilter(**kwargs)


class TestMonthReport:
    """Test entries joined with worker names."""

    async def test_month_entries_carry_names(self, session, test_worker, history):
        other = await add_worker(session, first_name="Jose", last_name="Alvarez")
        march = history["runs"][2]
        await PayrollEntryBuilder(session).build_entry(other.worker_id, march.payroll_run_id)

        entries = await PayrollQueryService(session).list_month_entries(3, 2024)

        # ordered by last name
        assert [e.worker_name for e in entries] == ["Jose Alvarez", "Maria Lopez"]
        assert all(e.payroll_run_id == march.payroll_run_id for e in entries)

    async def test_empty_month(self, session, history):
        assert await PayrollQueryService(session).list_month_entries(8, 2024) == []

    @pytest.mark.parametrize("month,year", [(None, 2024), (3, None), (13, 2024)])
    async def test_month_and_year_required(self, session, month, year):
        with pytest.raises(InvalidInputError):
            await PayrollQueryService(session).list_month_entries(month, year)

    async def test_run_entries(self, session, test_worker, history):
        march = history["runs"][2]

        entries = await PayrollQueryService(session).list_run_entries(march.payroll_run_id)

        assert entry_ids(entries) == [history["entries"][3]]
        assert entries[0].first_name == "Maria"
