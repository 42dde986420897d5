"""HTTP API for payroll runs and entries."""
