"""Isolation logical state - Pure functions.

Derives whether a person is isolating, and why, from the stored
isolation snapshot, the configuration and the current day. The state is
recomputed on demand and never stored.
"""

from dataclasses import dataclass
from enum import Enum

from isolation_engine.core.calendar import DayRange, GregorianDay
from isolation_engine.core.config import IsolationConfiguration
from isolation_engine.core.isolation import (
    IndexCaseInfo,
    IsolationInfo,
    SymptomaticInfo,
    TestInfo,
    TestResult,
)


class IsolationReason(Enum):
    """Why a person is isolating."""
    NONE = "none"
    INDEX_CASE = "indexCase"
    CONTACT_CASE = "contactCase"
    BOTH = "both"


@dataclass(frozen=True)
class IsolationLogicalState:
    """Derived isolation state for a single day.

    Attributes:
        isolating: True if today falls inside an active window
        active_index_case_window: Index-case window containing today
        active_contact_case_window: Contact-case window containing today
    """
    isolating: bool
    active_index_case_window: DayRange | None = None
    active_contact_case_window: DayRange | None = None

    @property
    def is_index_case_isolating(self) -> bool:
        return self.active_index_case_window is not None

    @property
    def reason(self) -> IsolationReason:
        if self.active_index_case_window and self.active_contact_case_window:
            return IsolationReason.BOTH
        if self.active_index_case_window:
            return IsolationReason.INDEX_CASE
        if self.active_contact_case_window:
            return IsolationReason.CONTACT_CASE
        return IsolationReason.NONE

    @property
    def isolation_end_day(self) -> GregorianDay | None:
        """First day the person is no longer isolating, if isolating."""
        ends = [
            w.end for w in (self.active_index_case_window, self.active_contact_case_window)
            if w is not None
        ]
        return max(ends) if ends else None

    def days_remaining(self, today: GregorianDay) -> int:
        end = self.isolation_end_day
        if end is None:
            return 0
        return max(today.days_until(end), 0)


def _symptomatic_window(
    symptoms: SymptomaticInfo,
    config: IsolationConfiguration,
) -> DayRange:
    if symptoms.onset_day is not None:
        end = symptoms.onset_day.advanced(config.index_case_since_self_diagnosis_onset)
    else:
        end = symptoms.self_diagnosis_day.advanced(
            config.index_case_since_self_diagnosis_unknown_onset
        )
    return DayRange(start=symptoms.assumed_onset_day, end=end)


def _positive_test_window(test: TestInfo, config: IsolationConfiguration) -> DayRange:
    window = DayRange.starting(
        test.trigger_day,
        config.index_case_since_npex_day_no_self_diagnosis,
    )
    if test.completed_on_day is not None:
        window = window.clamped_to(test.completed_on_day)
    return window


def index_case_window(
    info: IsolationInfo | IndexCaseInfo | None,
    config: IsolationConfiguration,
) -> DayRange | None:
    """Full index-case isolation window, whether or not it has ended.

    Pure function.

    Args:
        info: Stored snapshot (or just its index-case part)
        config: Isolation configuration

    Returns:
        The window, or None if the stored facts open no isolation
    """
    index = info.index_case_info if isinstance(info, IsolationInfo) else info
    if index is None or index.is_empty:
        return None

    symptoms = index.symptomatic_info
    test = index.test_info

    symptomatic = _symptomatic_window(symptoms, config) if symptoms else None

    if test is not None and test.result == TestResult.NEGATIVE:
        if symptomatic is None:
            return None
        # A negative taken after onset ends the symptomatic isolation
        if test.trigger_day >= symptomatic.start:
            symptomatic = symptomatic.clamped_to(test.trigger_day)
        window = symptomatic
    elif test is not None and test.is_positive:
        tested = _positive_test_window(test, config)
        if symptomatic is None:
            window = tested
        else:
            window = DayRange(
                start=min(symptomatic.start, tested.start),
                end=max(symptomatic.end, tested.end),
            )
    elif symptomatic is not None:
        window = symptomatic
    else:
        return None

    return window.clamped_to(window.start.advanced(config.max_isolation))


def contact_case_window(
    info: IsolationInfo,
    config: IsolationConfiguration,
) -> DayRange | None:
    """Full contact-case isolation window, whether or not it has ended.

    Pure function.
    """
    contact = info.contact_case_info
    if contact is None:
        return None
    window = DayRange.starting(contact.isolation_from_start_of_day, config.contact_case)
    return window.clamped_to(window.start.advanced(config.max_isolation))


def derive_logical_state(
    today: GregorianDay,
    info: IsolationInfo | None,
    config: IsolationConfiguration,
) -> IsolationLogicalState:
    """Compute the isolation state for `today`.

    Pure function. Every input combination yields a state; an empty or
    missing snapshot means not isolating.

    Args:
        today: Current calendar day
        info: Stored isolation snapshot
        config: Isolation configuration

    Returns:
        IsolationLogicalState for `today`
    """
    if info is None:
        return IsolationLogicalState(isolating=False)

    index_window = index_case_window(info, config)
    contact_window = contact_case_window(info, config)

    # Combined isolation never runs past max_isolation from the earliest trigger
    starts = [w.start for w in (index_window, contact_window) if w is not None]
    if starts:
        cap = min(starts).advanced(config.max_isolation)
        index_window = index_window.clamped_to(cap) if index_window else None
        contact_window = contact_window.clamped_to(cap) if contact_window else None

    active_index = index_window if index_window and index_window.contains(today) else None
    active_contact = contact_window if contact_window and contact_window.contains(today) else None

    return IsolationLogicalState(
        isolating=active_index is not None or active_contact is not None,
        active_index_case_window=active_index,
        active_contact_case_window=active_contact,
    )
