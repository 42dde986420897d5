"""Payroll entry API endpoints."""

from fastapi import APIRouter, status

from payroll_cycle.api.dependencies import CycleConfig, DbSession
from payroll_cycle.api.schemas import (
    ErrorResponse,
    PayrollEntryCreate,
    PayrollEntryDetailListResponse,
    PayrollEntryDetailResponse,
    PayrollEntryListResponse,
    PayrollEntryResponse,
)
from payroll_cycle.services.entry_builder import PayrollEntryBuilder
from payroll_cycle.services.query_service import EntryFilter, PayrollQueryService

router = APIRouter(prefix="/payroll-entries", tags=["payroll-entries"])


@router.post(
    "",
    response_model=PayrollEntryDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_payroll_entry(
    db: DbSession,
    cycle: CycleConfig,
    payload: PayrollEntryCreate,
) -> PayrollEntryDetailResponse:
    """Compute and store a worker's entry in a payroll run."""
    builder = PayrollEntryBuilder(db, cycle)
    entry = await builder.build_entry_with_worker(payload.worker_id, payload.payroll_run_id)
    await db.commit()
    return PayrollEntryDetailResponse.model_validate(entry)


@router.get(
    "/search",
    response_model=PayrollEntryListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def search_worker_entries(
    db: DbSession,
    worker_id: int,
    current: bool = False,
    paid: bool = False,
    unpaid: bool = False,
    month: int | None = None,
    year: int | None = None,
) -> PayrollEntryListResponse:
    """A worker's entries: current run, paid or unpaid runs, month and year.

    When both ``paid`` and ``unpaid`` are set, ``paid`` wins.
    """
    entries = await PayrollQueryService(db).list_worker_entries(
        EntryFilter(
            worker_id=worker_id,
            current_only=current,
            paid_only=paid,
            unpaid_only=unpaid,
            month=month,
            year=year,
        )
    )
    return PayrollEntryListResponse(
        items=[PayrollEntryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/month",
    response_model=PayrollEntryDetailListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_month_entries(
    db: DbSession,
    month: int,
    year: int,
) -> PayrollEntryDetailListResponse:
    """All workers' entries for a month, with worker names."""
    entries = await PayrollQueryService(db).list_month_entries(month, year)
    return PayrollEntryDetailListResponse(
        items=[PayrollEntryDetailResponse.model_validate(e) for e in entries],
        total=len(entries),
    )
