"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the isolation_engine package.
"""

from isolation_engine.main import (
    test_result_received,
    daily_housekeeping,
)

__all__ = [
    "test_result_received",
    "daily_housekeeping",
]
