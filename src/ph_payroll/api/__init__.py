"""HTTP API for the payroll lifecycle."""
