"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components. Each incoming test result
is handled as one read-decide-apply unit of work for a single person.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from isolation_engine.core.calendar import GregorianDay
from isolation_engine.core.config import AppConfig
from isolation_engine.core.housekeeping import (
    complete_stale_unconfirmed_test,
    should_delete_record,
)
from isolation_engine.core.isolation import IsolationInfo, VirologyStateTestResult
from isolation_engine.core.logical_state import IsolationLogicalState, derive_logical_state
from isolation_engine.core.store_operations import apply_store_operation
from isolation_engine.core.test_result_operation import StoreOperation, explain_decision

from isolation_engine.shell.isolation_store import (
    IsolationStore,
    IsolationStoreConfig,
    RecordChange,
    StoreError,
)
from isolation_engine.shell.virology_client import FetchedTestResult, VirologyClient


logger = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    """Result of merging one test result into a person's record.

    Attributes:
        person_id: Person the result belongs to
        operation: Store operation that was decided (None if none was)
        state_before: Isolation state before the merge
        state_after: Isolation state after the merge
        errors: Any errors that occurred
    """
    person_id: str
    operation: StoreOperation | None = None
    state_before: IsolationLogicalState | None = None
    state_after: IsolationLogicalState | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the processing result."""
        if self.operation is None:
            return f"No operation for {self.person_id}"

        isolating = self.state_after.isolating if self.state_after else False
        return (
            f"Applied {self.operation.value} for {self.person_id}, "
            f"{'isolating' if isolating else 'not isolating'}"
        )


@dataclass
class HousekeepingResult:
    """Result of the daily housekeeping for one person.

    Attributes:
        person_id: Person whose record was checked
        completed: Whether a stale unconfirmed test was completed
        deleted: Whether the record was deleted
        errors: Any errors that occurred
    """
    person_id: str
    completed: bool = False
    deleted: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


class IsolationOrchestrator:
    """Coordinates test result merging and housekeeping.

    This class wires together:
    - Isolation store (stored snapshots)
    - Virology client (fetches test results)
    - Core functions (logical state, merge decision, store operations)

    Each merge reads, decides and writes inside one store transaction,
    so two results arriving together for the same person cannot both
    decide against the old record.
    """

    def __init__(
        self,
        config: AppConfig,
        store: IsolationStore | None = None,
        virology_client: VirologyClient | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            store: Isolation store (created if not provided)
            virology_client: Virology client (created if not provided)
        """
        self.config = config
        self.store = store or IsolationStore(
            IsolationStoreConfig(
                database=config.firestore_database,
                collection=config.firestore_collection,
            )
        )
        self.virology_client = virology_client or VirologyClient(
            config.virology_base_url,
            api_key=config.virology_api_key,
        )

    def _today(self, today: GregorianDay | None) -> GregorianDay:
        if today is not None:
            return today
        return GregorianDay.today(self.config.timezone)

    def _state(self, info: IsolationInfo | None, today: GregorianDay) -> IsolationLogicalState:
        return derive_logical_state(today, info, self.config.isolation)

    def process_result(
        self,
        person_id: str,
        result: VirologyStateTestResult,
        today: GregorianDay | None = None,
    ) -> ProcessingResult:
        """Merge an incoming test result into a person's stored record.

        This is the main entry point that, inside one store transaction:
        1. Loads the stored snapshot
        2. Derives the current isolation state
        3. Decides the store operation
        4. Applies it and saves the new snapshot

        Args:
            person_id: Person the result belongs to
            result: Incoming test result
            today: Current day (defaults to today in the configured timezone)

        Returns:
            ProcessingResult with details of what happened
        """
        today = self._today(today)
        tz = self.config.timezone
        outcome: ProcessingResult | None = None

        def merge(stored: IsolationInfo | None) -> RecordChange:
            nonlocal outcome
            state_before = self._state(stored, today)

            # Pure core functions
            decision = explain_decision(
                state_before, stored, result, self.config.isolation, today, tz,
            )
            operation = decision.operation

            if operation.is_discard:
                logger.info("Stale result discarded for %s: %s", person_id, decision.reason)
            else:
                logger.info(
                    "Decided %s for %s: %s",
                    operation.value,
                    person_id,
                    decision.reason,
                )

            if not operation.mutates_record:
                outcome = ProcessingResult(
                    person_id=person_id,
                    operation=operation,
                    state_before=state_before,
                    state_after=state_before,
                )
                return RecordChange()

            updated = apply_store_operation(operation, stored, result, today, tz)
            outcome = ProcessingResult(
                person_id=person_id,
                operation=operation,
                state_before=state_before,
                state_after=self._state(updated, today),
            )
            return RecordChange(save=updated)

        try:
            self.store.update(person_id, merge)
        except StoreError as e:
            logger.error("Cannot merge result for %s: %s", person_id, str(e))
            if outcome is None:
                return ProcessingResult(person_id=person_id, errors=[str(e)])
            outcome.errors.append(str(e))

        return outcome

    def _merge_fetched(
        self,
        person_id: str,
        fetch: Callable[[], FetchedTestResult | None],
        today: GregorianDay | None,
    ) -> ProcessingResult:
        try:
            fetched = fetch()
        except Exception as e:
            error_msg = f"Failed to fetch test result: {e}"
            logger.error(error_msg)
            return ProcessingResult(person_id=person_id, errors=[error_msg])

        if fetched is None:
            logger.info("Test result for %s still pending", person_id)
            return ProcessingResult(person_id=person_id)

        if fetched.result is None:
            return ProcessingResult(
                person_id=person_id,
                errors=["Virology API returned a malformed test result"],
            )

        return self.process_result(person_id, fetched.result, today=today)

    def poll_test_result(
        self,
        person_id: str,
        polling_token: str,
        today: GregorianDay | None = None,
    ) -> ProcessingResult:
        """Fetch a result from the virology API and merge it.

        Args:
            person_id: Person the result belongs to
            polling_token: Token issued when the test was ordered
            today: Current day (defaults to today in the configured timezone)

        Returns:
            ProcessingResult; a pending result yields no operation and no errors
        """
        return self._merge_fetched(
            person_id,
            lambda: self.virology_client.fetch_test_result(polling_token),
            today,
        )

    def submit_test_code(
        self,
        person_id: str,
        cta_token: str,
        today: GregorianDay | None = None,
    ) -> ProcessingResult:
        """Exchange a manually entered test code and merge its result."""
        return self._merge_fetched(
            person_id,
            lambda: self.virology_client.exchange_cta_token(cta_token),
            today,
        )

    def run_housekeeping(
        self,
        person_id: str,
        today: GregorianDay | None = None,
    ) -> HousekeepingResult:
        """Run the daily housekeeping for one person's record.

        Completes an unconfirmed positive whose confirmatory window has
        passed, then deletes the record if it has outlived the
        housekeeping period. Both happen in one store transaction.

        Args:
            person_id: Person whose record to check
            today: Current day (defaults to today in the configured timezone)

        Returns:
            HousekeepingResult with details of what happened
        """
        today = self._today(today)
        result = HousekeepingResult(person_id=person_id)

        def tidy(info: IsolationInfo | None) -> RecordChange:
            completed = complete_stale_unconfirmed_test(info, self.config.isolation, today)
            if completed is not None:
                info = completed
            if should_delete_record(info, self.config.isolation, today):
                return RecordChange(delete=True)
            return RecordChange(save=completed)

        try:
            change = self.store.update(person_id, tidy)
        except StoreError as e:
            result.errors.append(str(e))
            return result

        if change.delete:
            logger.info("Deleted expired isolation record for %s", person_id)
            result.deleted = True
        elif change.save is not None:
            logger.info("Completed unconfirmed test for %s", person_id)
            result.completed = True

        return result

    def run_daily_housekeeping(
        self,
        today: GregorianDay | None = None,
    ) -> list[HousekeepingResult]:
        """Run housekeeping over every stored record.

        Args:
            today: Current day (defaults to today in the configured timezone)

        Returns:
            One HousekeepingResult per stored record
        """
        today = self._today(today)
        results = [
            self.run_housekeeping(person_id, today=today)
            for person_id in self.store.list_person_ids()
        ]

        logger.info(
            "Housekeeping checked %d records: %d completed, %d deleted",
            len(results),
            sum(1 for r in results if r.completed),
            sum(1 for r in results if r.deleted),
        )
        return results
