"""Payroll entry computation, run status tracking and scheduled run generation."""

__version__ = "0.1.0"
