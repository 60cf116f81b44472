"""Test authority - Pure functions.

Collapses the confirmation flags of a test into one value,
Unconfirmed(limit) or Confirmed, so the merge engine can rank facts
without re-reading raw flags.
"""

from dataclasses import dataclass

from isolation_engine.core.calendar import DayRange, GregorianDay
from isolation_engine.core.config import IsolationConfiguration
from isolation_engine.core.isolation import TestInfo, VirologyStateTestResult


@dataclass(frozen=True)
class TestAuthority:
    """Either Unconfirmed(limit) or Confirmed, as a single value.

    Attributes:
        confirmatory_day_limit: Days after the trigger day during which a
            confirmatory result is accepted (None when confirmed)
    """
    confirmatory_day_limit: int | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.confirmatory_day_limit is None

    def confirmatory_window(self, trigger_day: GregorianDay) -> DayRange | None:
        """Days on which a confirmatory result still applies, inclusive of the limit."""
        if self.confirmatory_day_limit is None:
            return None
        return DayRange.starting(trigger_day, self.confirmatory_day_limit + 1)

    def accepts_confirmation_on(self, trigger_day: GregorianDay, day: GregorianDay) -> bool:
        window = self.confirmatory_window(trigger_day)
        return window is not None and window.contains(day)


CONFIRMED = TestAuthority()


def unconfirmed(limit: int) -> TestAuthority:
    return TestAuthority(confirmatory_day_limit=limit)


def _authority(
    requires_confirmatory_test: bool,
    limit: int | None,
    config: IsolationConfiguration,
) -> TestAuthority:
    if not requires_confirmatory_test:
        return CONFIRMED
    return unconfirmed(limit if limit is not None else config.default_confirmatory_day_limit)


def authority_of(test: TestInfo, config: IsolationConfiguration) -> TestAuthority:
    """Authority of a stored test."""
    return _authority(test.requires_confirmatory_test, test.confirmatory_day_limit, config)


def authority_of_result(
    result: VirologyStateTestResult,
    config: IsolationConfiguration,
) -> TestAuthority:
    """Authority of an incoming result."""
    return _authority(result.requires_confirmatory_test, result.confirmatory_day_limit, config)
