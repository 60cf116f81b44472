"""Store operation application - Pure functions.

Turns a store operation decided by the merge engine into the new
isolation snapshot. Returns new values without modifying inputs; the
shell persists the result.
"""

from dataclasses import replace
from datetime import tzinfo

from isolation_engine.core.calendar import REFERENCE_TIMEZONE, GregorianDay
from isolation_engine.core.isolation import (
    IndexCaseInfo,
    IsolationInfo,
    TestInfo,
    VirologyStateTestResult,
)
from isolation_engine.core.test_result_operation import StoreOperation


def make_test_info(
    result: VirologyStateTestResult,
    received_on_day: GregorianDay,
    tz: tzinfo = REFERENCE_TIMEZONE,
) -> TestInfo:
    """Build the stored form of an incoming result.

    Pure function.

    Args:
        result: Incoming test result
        received_on_day: Day the result reached the person
        tz: Timezone used to turn the end date into a day

    Returns:
        TestInfo to store
    """
    return TestInfo(
        result=result.test_result,
        test_kit_type=result.test_kit_type,
        requires_confirmatory_test=result.requires_confirmatory_test,
        should_offer_follow_up_test=result.should_offer_follow_up_test,
        confirmatory_day_limit=result.confirmatory_day_limit,
        received_on_day=received_on_day,
        test_end_day=result.end_day(tz),
    )


def _with_index(info: IsolationInfo, index: IndexCaseInfo | None) -> IsolationInfo:
    if index is not None and index.is_empty:
        index = None
    return replace(info, index_case_info=index)


def _confirmed(test: TestInfo, day: GregorianDay) -> TestInfo:
    if test.is_confirmed:
        return test
    return replace(
        test,
        requires_confirmatory_test=False,
        should_offer_follow_up_test=False,
        confirmed_on_day=day,
    )


def apply_store_operation(
    operation: StoreOperation,
    stored: IsolationInfo | None,
    result: VirologyStateTestResult,
    today: GregorianDay,
    tz: tzinfo = REFERENCE_TIMEZONE,
) -> IsolationInfo:
    """Apply a store operation to a snapshot.

    Pure function. NOTHING, IGNORE, CONFIRM and DELETE_SYMPTOMS are
    idempotent: applying them twice gives the same snapshot.

    Args:
        operation: Operation decided for `result`
        stored: Current snapshot (None if nothing is stored)
        result: The incoming result the operation was decided for
        today: Day the result was received
        tz: Timezone used to turn the end date into a day

    Returns:
        The new snapshot
    """
    info = stored or IsolationInfo()
    index = info.index_case_info or IndexCaseInfo()
    stored_test = index.test_info
    incoming = make_test_info(result, received_on_day=today, tz=tz)
    result_day = result.end_day(tz)

    if operation in (StoreOperation.NOTHING, StoreOperation.IGNORE):
        return info

    if operation == StoreOperation.OVERWRITE:
        return _with_index(info, IndexCaseInfo(test_info=incoming))

    if operation == StoreOperation.OVERWRITE_AND_COMPLETE:
        # Closed on the day of the stored result that resolved it
        completed_on = stored_test.trigger_day if stored_test else result_day
        return _with_index(
            info,
            IndexCaseInfo(test_info=replace(incoming, completed_on_day=completed_on)),
        )

    if operation == StoreOperation.UPDATE:
        return _with_index(info, replace(index, test_info=incoming))

    if operation == StoreOperation.UPDATE_AND_CONFIRM:
        confirmed_on = stored_test.confirmed_on_day if stored_test else None
        updated = _confirmed(incoming, confirmed_on or today)
        return _with_index(info, replace(index, test_info=updated))

    if operation == StoreOperation.CONFIRM:
        if stored_test is None:
            return info
        return _with_index(info, replace(index, test_info=_confirmed(stored_test, result_day)))

    if operation == StoreOperation.DELETE_SYMPTOMS:
        return _with_index(info, replace(index, symptomatic_info=None))

    if operation in (StoreOperation.COMPLETE, StoreOperation.COMPLETE_AND_DELETE_SYMPTOMS):
        completed = index
        if stored_test is not None and not stored_test.is_completed:
            completed = replace(
                index,
                test_info=replace(stored_test, completed_on_day=result_day),
            )
        if operation == StoreOperation.COMPLETE_AND_DELETE_SYMPTOMS:
            completed = replace(completed, symptomatic_info=None)
        return _with_index(info, completed)

    raise ValueError(f"Unknown store operation: {operation!r}")
