"""Test-result merge engine - Pure functions.

Decides how an incoming test result must be merged into the stored
isolation snapshot. The output is a storage operation tag; applying it
is left to the caller. All functions are pure with no side effects.

Confirmed tests outrank unconfirmed ones, which outrank symptoms; facts
of equal authority are ranked by trigger day. An unconfirmed positive
carries a confirmatory window from its own trigger day; a later result
landing in that window attaches to the stored record instead of
replacing it.
"""

import logging
from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum

from isolation_engine.core.authority import TestAuthority, authority_of, authority_of_result
from isolation_engine.core.calendar import REFERENCE_TIMEZONE, DayRange, GregorianDay
from isolation_engine.core.config import IsolationConfiguration
from isolation_engine.core.isolation import (
    IndexCaseInfo,
    IsolationInfo,
    SymptomaticInfo,
    TestInfo,
    TestResult,
    VirologyStateTestResult,
)
from isolation_engine.core.logical_state import (
    IsolationLogicalState,
    contact_case_window,
    index_case_window,
)


logger = logging.getLogger(__name__)


class StoreOperation(Enum):
    """How the stored snapshot must change. Names are part of the contract."""
    NOTHING = "nothing"
    IGNORE = "ignore"
    UPDATE = "update"
    OVERWRITE = "overwrite"
    CONFIRM = "confirm"
    UPDATE_AND_CONFIRM = "updateAndConfirm"
    COMPLETE = "complete"
    COMPLETE_AND_DELETE_SYMPTOMS = "completeAndDeleteSymptoms"
    DELETE_SYMPTOMS = "deleteSymptoms"
    OVERWRITE_AND_COMPLETE = "overwriteAndComplete"

    @property
    def mutates_record(self) -> bool:
        return self not in (StoreOperation.NOTHING, StoreOperation.IGNORE)

    @property
    def is_discard(self) -> bool:
        """True when a stale result was dropped (as opposed to adding nothing)."""
        return self == StoreOperation.IGNORE


@dataclass(frozen=True)
class Decision:
    """A store operation together with the rule that produced it.

    Attributes:
        operation: Storage operation to perform
        reason: Short description of the rule that matched
    """
    operation: StoreOperation
    reason: str


def _stored_test(index: IndexCaseInfo | None) -> TestInfo | None:
    # A stored void result carries no information
    if index is None or index.test_info is None:
        return None
    if index.test_info.result == TestResult.VOID:
        return None
    return index.test_info


def _decide_negative(
    stored: IsolationInfo | None,
    day: GregorianDay,
    config: IsolationConfiguration,
) -> Decision:
    index = stored.index_case_info if stored else None
    test = _stored_test(index)
    symptoms = index.symptomatic_info if index else None

    if test is None and symptoms is None:
        return Decision(StoreOperation.OVERWRITE, "no index-case facts stored")

    symptoms_older = symptoms is not None and symptoms.assumed_onset_day < day

    if test is None:
        if symptoms_older:
            return Decision(StoreOperation.UPDATE, "negative after assumed onset ends symptomatic isolation")
        return Decision(StoreOperation.NOTHING, "symptom report is newer than negative")

    if test.result == TestResult.NEGATIVE:
        return Decision(StoreOperation.NOTHING, "repeat negative")

    if test.is_completed:
        return Decision(StoreOperation.NOTHING, "stored positive already completed")

    authority = authority_of(test, config)

    if authority.is_confirmed:
        if symptoms_older and day > test.trigger_day:
            return Decision(StoreOperation.DELETE_SYMPTOMS, "negative after confirmed positive clears symptoms")
        return Decision(StoreOperation.NOTHING, "confirmed positive stands")

    if day < test.trigger_day:
        return Decision(StoreOperation.NOTHING, "negative older than unconfirmed positive")

    if authority.accepts_confirmation_on(test.trigger_day, day):
        return Decision(StoreOperation.UPDATE, "negative inside confirmatory window refutes positive")

    if symptoms_older:
        return Decision(
            StoreOperation.COMPLETE_AND_DELETE_SYMPTOMS,
            "negative beyond confirmatory window, symptoms older",
        )
    return Decision(StoreOperation.COMPLETE, "negative beyond confirmatory window")


def _positive_over_negative(
    test: TestInfo,
    symptoms: SymptomaticInfo | None,
    incoming: TestAuthority,
    day: GregorianDay,
) -> Decision:
    if incoming.is_confirmed:
        return Decision(StoreOperation.OVERWRITE, "confirmed positive replaces negative")

    if day > test.trigger_day:
        return Decision(StoreOperation.OVERWRITE, "unconfirmed positive newer than negative")

    if symptoms is not None and symptoms.assumed_onset_day < day:
        return Decision(StoreOperation.IGNORE, "symptoms and later negative already cover positive")

    if incoming.accepts_confirmation_on(day, test.trigger_day):
        return Decision(StoreOperation.IGNORE, "stored negative refutes positive within its window")

    return Decision(
        StoreOperation.OVERWRITE_AND_COMPLETE,
        "stored negative beyond positive's confirmatory window",
    )


def _positive_after_expired_isolation(
    window: DayRange,
    test: TestInfo | None,
    symptoms: SymptomaticInfo | None,
    incoming: TestAuthority,
    day: GregorianDay,
    config: IsolationConfiguration,
) -> Decision:
    if day >= window.end:
        return Decision(StoreOperation.OVERWRITE, "positive after previous isolation ended")

    if test is None:
        if incoming.is_confirmed:
            return Decision(StoreOperation.UPDATE_AND_CONFIRM, "confirmed positive within past symptomatic isolation")
        if symptoms is not None and day < symptoms.assumed_onset_day:
            return Decision(StoreOperation.UPDATE, "positive predates past symptoms")
        return Decision(StoreOperation.NOTHING, "unconfirmed positive within past isolation")

    stored = authority_of(test, config)
    if (
        incoming.is_confirmed
        and not stored.is_confirmed
        and not test.is_completed
        and stored.accepts_confirmation_on(test.trigger_day, day)
    ):
        return Decision(StoreOperation.CONFIRM, "confirms past unconfirmed positive")

    return Decision(StoreOperation.NOTHING, "positive within past isolation")


def _positive_during_isolation(
    test: TestInfo | None,
    symptoms: SymptomaticInfo | None,
    incoming: TestAuthority,
    day: GregorianDay,
    config: IsolationConfiguration,
) -> Decision:
    if test is None:
        if incoming.is_confirmed:
            return Decision(StoreOperation.UPDATE, "confirmed positive during symptomatic isolation")
        if symptoms is not None and day < symptoms.assumed_onset_day:
            return Decision(StoreOperation.UPDATE, "positive predates symptoms")
        return Decision(StoreOperation.NOTHING, "unconfirmed positive adds nothing to symptoms")

    stored = authority_of(test, config)

    if day < test.trigger_day:
        if symptoms is None:
            return Decision(StoreOperation.OVERWRITE, "older positive restarts test isolation")
        if stored.is_confirmed and not incoming.is_confirmed:
            return Decision(StoreOperation.UPDATE_AND_CONFIRM, "older positive keeps stored confirmation")
        return Decision(StoreOperation.UPDATE, "older positive backdates isolation")

    if not incoming.is_confirmed:
        return Decision(StoreOperation.NOTHING, "unconfirmed positive not newer in authority")

    redundant = day == test.trigger_day or (
        symptoms is not None and symptoms.assumed_onset_day > day
    )

    if (
        not stored.is_confirmed
        and not test.is_completed
        and stored.accepts_confirmation_on(test.trigger_day, day)
    ):
        if redundant:
            return Decision(StoreOperation.CONFIRM, "confirms stored positive")
        return Decision(StoreOperation.UPDATE, "newer confirmed positive replaces unconfirmed")

    if redundant:
        return Decision(StoreOperation.NOTHING, "no newer information")
    return Decision(StoreOperation.UPDATE, "newer confirmed positive")


def _decide_positive(
    current_state: IsolationLogicalState,
    stored: IsolationInfo | None,
    result: VirologyStateTestResult,
    day: GregorianDay,
    config: IsolationConfiguration,
    today: GregorianDay,
) -> Decision:
    incoming = authority_of_result(result, config)
    index = stored.index_case_info if stored else None
    test = _stored_test(index)
    symptoms = index.symptomatic_info if index else None

    if test is None and symptoms is None:
        contact_window = contact_case_window(stored, config) if stored else None
        if contact_window is not None:
            boundary = contact_window.end.advanced(-config.housekeeping_deletion_period)
            if day < boundary:
                return Decision(StoreOperation.IGNORE, "positive too old relative to contact isolation")
        return Decision(StoreOperation.OVERWRITE, "no index-case facts stored")

    if test is not None and test.result == TestResult.NEGATIVE:
        return _positive_over_negative(test, symptoms, incoming, day)

    window = index_case_window(index, config)
    if window is None:
        return Decision(StoreOperation.OVERWRITE, "stored facts open no isolation")

    expired = not current_state.is_index_case_isolating and window.end <= today
    if expired:
        return _positive_after_expired_isolation(window, test, symptoms, incoming, day, config)
    return _positive_during_isolation(test, symptoms, incoming, day, config)


def explain_decision(
    current_state: IsolationLogicalState,
    stored: IsolationInfo | None,
    result: VirologyStateTestResult,
    config: IsolationConfiguration,
    today: GregorianDay,
    tz: tzinfo = REFERENCE_TIMEZONE,
) -> Decision:
    """Decide the store operation and report which rule produced it.

    Pure function. Total over its inputs: never raises for well-formed
    values, and falls back to NOTHING when nothing changes.

    Args:
        current_state: Logical state derived from `stored` for `today`
        stored: Stored isolation snapshot
        result: Incoming test result
        config: Isolation configuration
        today: Current calendar day
        tz: Timezone used to turn the result's end date into a day

    Returns:
        Decision with the operation and the matching rule
    """
    if result.test_result == TestResult.VOID:
        return Decision(StoreOperation.NOTHING, "void result carries no information")

    day = result.end_day(tz)

    if result.test_result == TestResult.NEGATIVE:
        decision = _decide_negative(stored, day, config)
    else:
        decision = _decide_positive(current_state, stored, result, day, config, today)

    logger.debug(
        "%s %s result for %s -> %s (%s)",
        "Unconfirmed" if result.requires_confirmatory_test else "Confirmed",
        result.test_result.value,
        day,
        decision.operation.value,
        decision.reason,
    )
    return decision


def decide(
    current_state: IsolationLogicalState,
    stored: IsolationInfo | None,
    result: VirologyStateTestResult,
    config: IsolationConfiguration,
    today: GregorianDay,
    tz: tzinfo = REFERENCE_TIMEZONE,
) -> StoreOperation:
    """Decide how an incoming test result must be stored.

    Pure function. See explain_decision.
    """
    return explain_decision(current_state, stored, result, config, today, tz).operation


@dataclass(frozen=True)
class TestResultIsolationOperation:
    """Bundles the inputs of one merge decision.

    Attributes:
        current_isolation_state: Logical state of the stored snapshot
        stored_isolation_info: Stored snapshot
        result: Incoming test result
        configuration: Isolation configuration
        today: Current calendar day
        timezone: Timezone used to turn the result's end date into a day
    """
    current_isolation_state: IsolationLogicalState
    stored_isolation_info: IsolationInfo | None
    result: VirologyStateTestResult
    configuration: IsolationConfiguration
    today: GregorianDay
    timezone: tzinfo = REFERENCE_TIMEZONE

    def store_operation(self) -> StoreOperation:
        return decide(
            self.current_isolation_state,
            self.stored_isolation_info,
            self.result,
            self.configuration,
            self.today,
            self.timezone,
        )
