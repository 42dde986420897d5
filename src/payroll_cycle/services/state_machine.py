"""Payroll run state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import Any

from payroll_cycle.exceptions import AlreadyPaidError, InvalidStatusError


class RunStatus(str, Enum):
    """Payroll run status values."""

    UNPAID = "UNPAID"
    PAID = "PAID"


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - UNPAID → PAID (payment)
    - PAID → UNPAID (administrative reversal, also the effect of "delete")

    Runs are never hard-deleted. Every run is created UNPAID.
    """

    INITIAL_STATUS = RunStatus.UNPAID

    VALID_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
        RunStatus.UNPAID: frozenset({RunStatus.PAID}),
        RunStatus.PAID: frozenset({RunStatus.UNPAID}),
    }

    @classmethod
    def parse_status(cls, value: Any) -> RunStatus:
        """Validate a status coming from outside. Never coerces to a default."""
        if isinstance(value, RunStatus):
            return value
        if isinstance(value, str):
            try:
                return RunStatus(value)
            except ValueError:
                pass
        allowed = ", ".join(s.value for s in RunStatus)
        raise InvalidStatusError(value, f"must be one of {allowed}")

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        try:
            source = RunStatus(from_status)
            target = RunStatus(to_status)
        except ValueError:
            return False
        return target in cls.VALID_TRANSITIONS[source]

    @classmethod
    def validate_payment(cls, payroll_run_id: int, current_status: str) -> None:
        """Check that a run may be paid.

        Raises AlreadyPaidError for a run that is already PAID.
        """
        status = cls.parse_status(current_status)
        if not cls.can_transition(status, RunStatus.PAID):
            raise AlreadyPaidError(payroll_run_id)

    @classmethod
    def initial_status(cls, requested: Any = None) -> RunStatus:
        """Status for a newly created run.

        A caller may pass a status, but it has to be a valid one and it has
        to be UNPAID: runs are paid through the payment transition only.
        """
        if requested is None:
            return cls.INITIAL_STATUS
        status = cls.parse_status(requested)
        if status is not cls.INITIAL_STATUS:
            raise InvalidStatusError(requested, "new payroll runs always start UNPAID")
        return status
