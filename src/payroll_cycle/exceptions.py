"""Error taxonomy for payroll computation and scheduling."""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for all payroll cycle errors."""

    code = "PAYROLL_ERROR"


class InvalidInputError(PayrollError):
    """Raised when a filter, date or identifier is malformed."""

    code = "INVALID_INPUT"

    def __init__(self, field: str, value: Any, reason: str | None = None):
        self.field = field
        self.value = value
        self.reason = reason
        msg = f"Invalid value for '{field}': {value!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class WorkerNotFoundError(PayrollError):
    """Raised when the worker directory has no such worker."""

    code = "WORKER_NOT_FOUND"

    def __init__(self, worker_id: int):
        self.worker_id = worker_id
        super().__init__(f"Worker {worker_id} not found")


class RunNotFoundError(PayrollError):
    """Raised when a payroll run does not exist."""

    code = "RUN_NOT_FOUND"

    def __init__(self, payroll_run_id: int):
        self.payroll_run_id = payroll_run_id
        super().__init__(f"Payroll run {payroll_run_id} not found")


class AlreadyPaidError(PayrollError):
    """Raised when paying a run that is already paid. Status is left untouched."""

    code = "ALREADY_PAID"

    def __init__(self, payroll_run_id: int):
        self.payroll_run_id = payroll_run_id
        super().__init__(f"Payroll run {payroll_run_id} is already paid")


class DuplicateEntryError(PayrollError):
    """Raised when a worker already has an entry in a payroll run."""

    code = "DUPLICATE_ENTRY"

    def __init__(
        self,
        worker_id: int,
        payroll_run_id: int,
        existing_entry_id: int | None = None,
    ):
        self.worker_id = worker_id
        self.payroll_run_id = payroll_run_id
        self.existing_entry_id = existing_entry_id
        msg = f"Worker {worker_id} already has an entry in payroll run {payroll_run_id}"
        if existing_entry_id is not None:
            msg += f" (entry {existing_entry_id})"
        super().__init__(msg)


class InvalidStatusError(PayrollError):
    """Raised when a run status is outside the allowed enumeration."""

    code = "INVALID_STATUS"

    def __init__(self, status: Any, reason: str | None = None):
        self.status = status
        self.reason = reason
        msg = f"Invalid payroll run status {status!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StorageError(PayrollError):
    """Wraps an underlying persistence failure. Callers decide whether to retry."""

    code = "STORAGE_ERROR"

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        msg = f"Storage failure during {operation}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
