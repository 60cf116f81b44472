"""Housekeeping logic - Pure functions.

Daily decisions about stored isolation snapshots: resolving unconfirmed
positives whose confirmatory window has passed, and deleting records
that finished long enough ago.

Note: The actual deletion is handled by the imperative shell
(isolation store). This module only contains the pure logic.
"""

from dataclasses import replace

from isolation_engine.core.authority import authority_of
from isolation_engine.core.calendar import GregorianDay
from isolation_engine.core.config import IsolationConfiguration
from isolation_engine.core.isolation import IsolationInfo, TestResult
from isolation_engine.core.logical_state import (
    contact_case_window,
    derive_logical_state,
    index_case_window,
)


def complete_stale_unconfirmed_test(
    info: IsolationInfo | None,
    config: IsolationConfiguration,
    today: GregorianDay,
) -> IsolationInfo | None:
    """Complete an unconfirmed positive whose confirmatory window has passed.

    Pure function.

    Args:
        info: Stored snapshot
        config: Isolation configuration
        today: Current calendar day

    Returns:
        The updated snapshot, or None if nothing needs completing
    """
    if info is None or info.index_case_info is None:
        return None

    test = info.index_case_info.test_info
    if test is None or test.result != TestResult.POSITIVE:
        return None
    if test.is_confirmed or test.is_completed:
        return None

    window = authority_of(test, config).confirmatory_window(test.trigger_day)
    if window is None or today < window.end:
        return None

    completed = replace(test, completed_on_day=window.end)
    return replace(
        info,
        index_case_info=replace(info.index_case_info, test_info=completed),
    )


def last_relevant_day(
    info: IsolationInfo,
    config: IsolationConfiguration,
) -> GregorianDay | None:
    """Last day any stored fact still mattered.

    Pure function. Isolation windows count up to their end; a stored
    test that opened no window counts on its trigger day.
    """
    days: list[GregorianDay] = []

    index_window = index_case_window(info, config)
    if index_window is not None:
        days.append(index_window.end)
    elif info.index_case_info is not None:
        index = info.index_case_info
        if index.test_info is not None:
            days.append(index.test_info.trigger_day)
        if index.symptomatic_info is not None:
            days.append(index.symptomatic_info.self_diagnosis_day)

    contact_window = contact_case_window(info, config)
    if contact_window is not None:
        days.append(contact_window.end)

    return max(days) if days else None


def should_delete_record(
    info: IsolationInfo | None,
    config: IsolationConfiguration,
    today: GregorianDay,
) -> bool:
    """Check if a stored snapshot has outlived the housekeeping period.

    Pure function.

    Args:
        info: Stored snapshot
        config: Isolation configuration
        today: Current calendar day

    Returns:
        True if the record should be deleted
    """
    if info is None or info.is_empty:
        return False

    if derive_logical_state(today, info, config).isolating:
        return False

    last_day = last_relevant_day(info, config)
    if last_day is None:
        return False

    return last_day.days_until(today) >= config.housekeeping_deletion_period
