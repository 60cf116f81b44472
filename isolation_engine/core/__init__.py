"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Calendar day arithmetic
- Isolation record model and parsing
- Isolation logical state derivation
- Test-result merge decisions
- Store operation application
- Housekeeping decisions

All functions here are deterministic and have no I/O.
"""

from isolation_engine.core.calendar import DayRange, GregorianDay
from isolation_engine.core.config import IsolationConfiguration, validate_configuration
from isolation_engine.core.isolation import (
    ContactCaseInfo,
    IndexCaseInfo,
    IsolationInfo,
    SymptomaticInfo,
    TestInfo,
    TestKitType,
    TestResult,
    VirologyStateTestResult,
    parse_isolation_info,
    parse_test_result,
)
from isolation_engine.core.logical_state import IsolationLogicalState, derive_logical_state
from isolation_engine.core.test_result_operation import StoreOperation, decide
from isolation_engine.core.store_operations import apply_store_operation
from isolation_engine.core.housekeeping import should_delete_record

__all__ = [
    # Calendar
    "DayRange",
    "GregorianDay",
    # Config
    "IsolationConfiguration",
    "validate_configuration",
    # Records
    "ContactCaseInfo",
    "IndexCaseInfo",
    "IsolationInfo",
    "SymptomaticInfo",
    "TestInfo",
    "TestKitType",
    "TestResult",
    "VirologyStateTestResult",
    "parse_isolation_info",
    "parse_test_result",
    # Logical state
    "IsolationLogicalState",
    "derive_logical_state",
    # Merge engine
    "StoreOperation",
    "decide",
    "apply_store_operation",
    # Housekeeping
    "should_delete_record",
]
