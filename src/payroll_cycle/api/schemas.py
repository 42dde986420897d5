"""Pydantic schemas for API request/response models."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str


# ============================================================================
# Payroll Run schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    """Schema for creating a new payroll run. Runs always start UNPAID."""

    run_date: date
    status: str | None = None


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: int
    run_date: date
    amount: int
    status: str


class PayrollRunListResponse(BaseModel):
    """Schema for listing payroll runs."""

    items: list[PayrollRunResponse]
    total: int


class GenerateRunRequest(BaseModel):
    """Schema for generating a payroll run on demand."""

    run_date: date | None = None
    fan_out: bool = True


class GenerationReportResponse(BaseModel):
    """Schema for the outcome of a run generation."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: int
    entry_ids: list[int]
    failed_worker_ids: list[int]
    errors: dict[int, str]
    success: bool


# ============================================================================
# Payroll Entry schemas
# ============================================================================


class PayrollEntryCreate(BaseModel):
    """Schema for generating one worker's entry in a run."""

    worker_id: int = Field(gt=0)
    payroll_run_id: int = Field(gt=0)


class PayrollEntryResponse(BaseModel):
    """Schema for payroll entry response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_entry_id: int
    payroll_run_id: int
    worker_id: int
    base_salary: int
    incidence_total: int | None = None
    total: int | None = None
    details: str | None = None


class PayrollEntryDetailResponse(PayrollEntryResponse):
    """Payroll entry joined with the worker's name."""

    first_name: str
    last_name: str
    worker_name: str


class PayrollEntryListResponse(BaseModel):
    """Schema for listing payroll entries."""

    items: list[PayrollEntryResponse]
    total: int


class PayrollEntryDetailListResponse(BaseModel):
    """Schema for listing payroll entries with worker names."""

    items: list[PayrollEntryDetailResponse]
    total: int
