"""Isolation record model and parsing - Pure functions.

This module defines the persisted isolation snapshot and the incoming
test result event, and converts both to and from plain dicts.
All functions are pure with no side effects.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any

from isolation_engine.core.calendar import REFERENCE_TIMEZONE, GregorianDay


# Days between the assumed symptom onset and the self-diagnosis day
# when the person could not say when symptoms started
ASSUMED_ONSET_OFFSET_DAYS = 2


class TestResult(Enum):
    """Outcome of a virology test."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    VOID = "void"


class TestKitType(Enum):
    """How the test specimen was processed."""
    LAB_RESULT = "labResult"
    RAPID_RESULT = "rapidResult"
    RAPID_SELF_REPORTED = "rapidSelfReported"


@dataclass(frozen=True)
class SymptomaticInfo:
    """Self-reported symptoms.

    Attributes:
        self_diagnosis_day: Day the person reported symptoms
        onset_day: Day symptoms started, if known
    """
    self_diagnosis_day: GregorianDay
    onset_day: GregorianDay | None = None

    @property
    def assumed_onset_day(self) -> GregorianDay:
        """Onset day, or self-diagnosis day minus the fixed offset if unknown."""
        if self.onset_day is not None:
            return self.onset_day
        return self.self_diagnosis_day.advanced(-ASSUMED_ONSET_OFFSET_DAYS)


@dataclass(frozen=True)
class TestInfo:
    """A stored test result.

    Attributes:
        result: Test outcome
        test_kit_type: Lab or rapid test
        requires_confirmatory_test: True while a positive awaits confirmation
        should_offer_follow_up_test: Whether a follow-up test should be offered
        received_on_day: Day the result reached the person
        test_end_day: Day the specimen was taken/resulted (NPEX day)
        confirmatory_day_limit: Days after the trigger day within which a
            confirmatory test may still resolve this result
        confirmed_on_day: Day a confirmatory result arrived
        completed_on_day: Day the result was resolved without confirmation
    """
    result: TestResult
    test_kit_type: TestKitType
    requires_confirmatory_test: bool
    received_on_day: GregorianDay
    should_offer_follow_up_test: bool = False
    test_end_day: GregorianDay | None = None
    confirmatory_day_limit: int | None = None
    confirmed_on_day: GregorianDay | None = None
    completed_on_day: GregorianDay | None = None

    @property
    def trigger_day(self) -> GregorianDay:
        """NPEX day if known, otherwise the day the result was received."""
        return self.test_end_day or self.received_on_day

    @property
    def is_positive(self) -> bool:
        return self.result == TestResult.POSITIVE

    @property
    def is_confirmed(self) -> bool:
        return not self.requires_confirmatory_test

    @property
    def is_completed(self) -> bool:
        return self.completed_on_day is not None


@dataclass(frozen=True)
class IndexCaseInfo:
    """Facts that make the person a potential source of infection."""
    symptomatic_info: SymptomaticInfo | None = None
    test_info: TestInfo | None = None

    @property
    def is_empty(self) -> bool:
        return self.symptomatic_info is None and self.test_info is None


@dataclass(frozen=True)
class ContactCaseInfo:
    """An exposure notification.

    Attributes:
        exposure_day: Day of the risky contact
        isolation_from_start_of_day: Day the contact isolation starts
    """
    exposure_day: GregorianDay
    isolation_from_start_of_day: GregorianDay


@dataclass(frozen=True)
class IsolationInfo:
    """The full persisted isolation snapshot for one person."""
    index_case_info: IndexCaseInfo | None = None
    contact_case_info: ContactCaseInfo | None = None

    @property
    def has_index_case_facts(self) -> bool:
        return self.index_case_info is not None and not self.index_case_info.is_empty

    @property
    def is_empty(self) -> bool:
        return not self.has_index_case_facts and self.contact_case_info is None


@dataclass(frozen=True)
class VirologyStateTestResult:
    """An incoming test result, consumed once by the merge engine.

    Attributes:
        test_result: Test outcome
        test_kit_type: Lab or rapid test
        end_date: Instant the test ended
        diagnosis_key_submission_token: Token for sharing keys, if supported
        requires_confirmatory_test: True for results needing confirmation
        should_offer_follow_up_test: Whether a follow-up test should be offered
        confirmatory_day_limit: Days within which confirmation is accepted
    """
    test_result: TestResult
    test_kit_type: TestKitType
    end_date: datetime
    diagnosis_key_submission_token: str | None = None
    requires_confirmatory_test: bool = False
    should_offer_follow_up_test: bool = False
    confirmatory_day_limit: int | None = None

    def end_day(self, tz: tzinfo = REFERENCE_TIMEZONE) -> GregorianDay:
        """Trigger day of the result in the reference timezone."""
        return GregorianDay.from_datetime(self.end_date, tz)


def _day_or_none(value: Any) -> GregorianDay | None:
    if value is None:
        return None
    return GregorianDay.parse(value)


def _str_or_none(day: GregorianDay | None) -> str | None:
    return str(day) if day is not None else None


def isolation_info_to_dict(info: IsolationInfo) -> dict[str, Any]:
    """Convert an isolation snapshot to a JSON-compatible dict.

    Pure function.
    """
    data: dict[str, Any] = {}

    index = info.index_case_info
    if index is not None:
        index_data: dict[str, Any] = {}
        if index.symptomatic_info is not None:
            index_data["symptomaticInfo"] = {
                "selfDiagnosisDay": str(index.symptomatic_info.self_diagnosis_day),
                "onsetDay": _str_or_none(index.symptomatic_info.onset_day),
            }
        if index.test_info is not None:
            test = index.test_info
            index_data["testInfo"] = {
                "result": test.result.value,
                "testKitType": test.test_kit_type.value,
                "requiresConfirmatoryTest": test.requires_confirmatory_test,
                "shouldOfferFollowUpTest": test.should_offer_follow_up_test,
                "confirmatoryDayLimit": test.confirmatory_day_limit,
                "receivedOnDay": str(test.received_on_day),
                "testEndDay": _str_or_none(test.test_end_day),
                "confirmedOnDay": _str_or_none(test.confirmed_on_day),
                "completedOnDay": _str_or_none(test.completed_on_day),
            }
        data["indexCaseInfo"] = index_data

    if info.contact_case_info is not None:
        data["contactCaseInfo"] = {
            "exposureDay": str(info.contact_case_info.exposure_day),
            "isolationFromStartOfDay": str(info.contact_case_info.isolation_from_start_of_day),
        }

    return data


def parse_isolation_info(data: dict[str, Any]) -> IsolationInfo:
    """Parse a stored snapshot produced by isolation_info_to_dict.

    Pure function.

    Raises:
        KeyError, TypeError, ValueError: If the stored data is corrupt
    """
    index_case_info = None
    index_data = data.get("indexCaseInfo")
    if index_data is not None:
        symptomatic_info = None
        symptoms = index_data.get("symptomaticInfo")
        if symptoms is not None:
            symptomatic_info = SymptomaticInfo(
                self_diagnosis_day=GregorianDay.parse(symptoms["selfDiagnosisDay"]),
                onset_day=_day_or_none(symptoms.get("onsetDay")),
            )

        test_info = None
        test = index_data.get("testInfo")
        if test is not None:
            limit = test.get("confirmatoryDayLimit")
            test_info = TestInfo(
                result=TestResult(test["result"]),
                test_kit_type=TestKitType(test["testKitType"]),
                requires_confirmatory_test=bool(test["requiresConfirmatoryTest"]),
                should_offer_follow_up_test=bool(test.get("shouldOfferFollowUpTest", False)),
                confirmatory_day_limit=int(limit) if limit is not None else None,
                received_on_day=GregorianDay.parse(test["receivedOnDay"]),
                test_end_day=_day_or_none(test.get("testEndDay")),
                confirmed_on_day=_day_or_none(test.get("confirmedOnDay")),
                completed_on_day=_day_or_none(test.get("completedOnDay")),
            )

        index_case_info = IndexCaseInfo(
            symptomatic_info=symptomatic_info,
            test_info=test_info,
        )

    contact_case_info = None
    contact = data.get("contactCaseInfo")
    if contact is not None:
        contact_case_info = ContactCaseInfo(
            exposure_day=GregorianDay.parse(contact["exposureDay"]),
            isolation_from_start_of_day=GregorianDay.parse(contact["isolationFromStartOfDay"]),
        )

    return IsolationInfo(
        index_case_info=index_case_info,
        contact_case_info=contact_case_info,
    )


# Virology API enum spellings
_API_TEST_RESULTS = {
    "POSITIVE": TestResult.POSITIVE,
    "NEGATIVE": TestResult.NEGATIVE,
    "VOID": TestResult.VOID,
}

_API_TEST_KITS = {
    "LAB_RESULT": TestKitType.LAB_RESULT,
    "RAPID_RESULT": TestKitType.RAPID_RESULT,
    "RAPID_SELF_REPORTED": TestKitType.RAPID_SELF_REPORTED,
}


def parse_test_result(
    payload: dict[str, Any],
    diagnosis_key_submission_token: str | None = None,
) -> VirologyStateTestResult | None:
    """Parse a virology API payload into a test result.

    Pure function: takes raw dict, returns typed result or None if invalid.

    Args:
        payload: JSON body from the virology API or a manual entry form
        diagnosis_key_submission_token: Token to attach when key
            submission is supported

    Returns:
        VirologyStateTestResult or None if parsing fails
    """
    try:
        test_result = _API_TEST_RESULTS[str(payload["testResult"]).upper()]
        test_kit_type = _API_TEST_KITS[str(payload.get("testKit", "LAB_RESULT")).upper()]

        end_date = datetime.fromisoformat(str(payload["testEndDate"]).replace("Z", "+00:00"))

        limit = payload.get("confirmatoryDayLimit")
        if limit is not None:
            limit = int(limit)
            if limit < 0:
                return None

        token = diagnosis_key_submission_token
        if not payload.get("diagnosisKeySubmissionSupported", False):
            token = None

        return VirologyStateTestResult(
            test_result=test_result,
            test_kit_type=test_kit_type,
            end_date=end_date,
            diagnosis_key_submission_token=token,
            requires_confirmatory_test=bool(payload.get("requiresConfirmatoryTest", False)),
            should_offer_follow_up_test=bool(payload.get("shouldOfferFollowUpTest", False)),
            confirmatory_day_limit=limit,
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None
