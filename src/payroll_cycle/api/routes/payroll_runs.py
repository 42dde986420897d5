"""Payroll run API endpoints."""

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Path, status

from payroll_cycle.api.dependencies import AppSettings, CycleConfig, DbSession, SessionFactory
from payroll_cycle.api.schemas import (
    ErrorResponse,
    GenerateRunRequest,
    GenerationReportResponse,
    PayrollEntryDetailListResponse,
    PayrollEntryDetailResponse,
    PayrollRunCreate,
    PayrollRunListResponse,
    PayrollRunResponse,
)
from payroll_cycle.services.generation_service import PayrollGenerator
from payroll_cycle.services.payroll_run_service import PayrollRunService
from payroll_cycle.services.query_service import PayrollQueryService, RunFilter

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


# ============================================================================
# Queries
# ============================================================================


@router.get(
    "",
    response_model=PayrollRunListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_payroll_runs(
    db: DbSession,
    run_date: date | None = None,
    month: int | None = None,
    year: int | None = None,
) -> PayrollRunListResponse:
    """List payroll runs filtered by exact date, month and year."""
    runs = await PayrollQueryService(db).list_runs(
        RunFilter(run_date=run_date, month=month, year=year)
    )
    return PayrollRunListResponse(
        items=[PayrollRunResponse.model_validate(run) for run in runs],
        total=len(runs),
    )


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[int, Path()],
) -> PayrollRunResponse:
    """Get a specific payroll run by ID."""
    run = await PayrollQueryService(db).get_run(payroll_run_id)
    return PayrollRunResponse.model_validate(run)


@router.get(
    "/{payroll_run_id}/entries",
    response_model=PayrollEntryDetailListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_payroll_run_entries(
    db: DbSession,
    payroll_run_id: Annotated[int, Path()],
) -> PayrollEntryDetailListResponse:
    """List the entries of a payroll run with worker names."""
    entries = await PayrollQueryService(db).list_run_entries(payroll_run_id)
    return PayrollEntryDetailListResponse(
        items=[PayrollEntryDetailResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


# ============================================================================
# Creation and generation
# ============================================================================


@router.post(
    "",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_payroll_run(
    db: DbSession,
    payload: PayrollRunCreate,
) -> PayrollRunResponse:
    """Create a new payroll run in UNPAID status."""
    run = await PayrollRunService(db).create_run(payload.run_date, payload.status)
    await db.commit()
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/generate",
    response_model=GenerationReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_payroll_run(
    factory: SessionFactory,
    settings: AppSettings,
    cycle: CycleConfig,
    payload: GenerateRunRequest,
) -> GenerationReportResponse:
    """Create a run and build entries for every active worker."""
    generator = PayrollGenerator(
        factory,
        cycle=cycle,
        max_concurrency=settings.max_concurrency,
        storage_timeout_seconds=settings.storage_timeout_seconds,
    )
    run_date = payload.run_date or datetime.now(settings.timezone).date()
    report = await generator.generate_run(run_date, fan_out=payload.fan_out)
    return GenerationReportResponse.model_validate(report)


# ============================================================================
# State transitions
# ============================================================================


@router.post(
    "/{payroll_run_id}/pay",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pay_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[int, Path()],
) -> PayrollRunResponse:
    """Mark an UNPAID run as PAID."""
    run = await PayrollRunService(db).mark_paid(payroll_run_id)
    await db.commit()
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/{payroll_run_id}/reset",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def reset_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[int, Path()],
) -> PayrollRunResponse:
    """Administrative reversal back to UNPAID."""
    run = await PayrollRunService(db).reset_to_unpaid(payroll_run_id)
    await db.commit()
    return PayrollRunResponse.model_validate(run)


@router.delete(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[int, Path()],
) -> PayrollRunResponse:
    """Logical delete: the run is kept and set back to UNPAID."""
    run = await PayrollRunService(db).delete_run(payroll_run_id)
    await db.commit()
    return PayrollRunResponse.model_validate(run)
