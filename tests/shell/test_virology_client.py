"""Tests for the virology API client.

Uses the `responses` library to mock HTTP requests.
"""

import json
from datetime import datetime, timezone

import pytest
import requests
import responses

from isolation_engine.core.isolation import TestKitType, TestResult
from isolation_engine.shell.virology_client import (
    CTA_EXCHANGE_PATH,
    RESULTS_PATH,
    VirologyClient,
)


BASE_URL = "https://virology.example.test"

POSITIVE_PAYLOAD = {
    "testEndDate": "2021-07-13T10:00:00Z",
    "testResult": "POSITIVE",
    "testKit": "LAB_RESULT",
    "diagnosisKeySubmissionSupported": True,
    "requiresConfirmatoryTest": False,
}


@pytest.fixture
def client():
    """Client pointed at the mocked API."""
    return VirologyClient(BASE_URL, api_key="secret")


class TestFetchTestResult:
    """Tests for VirologyClient.fetch_test_result()."""

    @responses.activate
    def test_returns_parsed_result(self, client):
        """A 200 response is parsed into a test result."""
        responses.add(responses.POST, BASE_URL + RESULTS_PATH, json=POSITIVE_PAYLOAD, status=200)

        fetched = client.fetch_test_result("poll-1")

        assert fetched is not None
        assert fetched.result.test_result == TestResult.POSITIVE
        assert fetched.result.test_kit_type == TestKitType.LAB_RESULT
        assert fetched.result.end_date == datetime(2021, 7, 13, 10, tzinfo=timezone.utc)
        assert fetched.result.diagnosis_key_submission_token == "poll-1"
        assert fetched.raw == POSITIVE_PAYLOAD

    @responses.activate
    def test_sends_polling_token_and_bearer(self, client):
        """Request body carries the polling token, headers the API key."""
        responses.add(responses.POST, BASE_URL + RESULTS_PATH, json=POSITIVE_PAYLOAD, status=200)

        client.fetch_test_result("poll-1")

        request = responses.calls[0].request
        assert json.loads(request.body) == {"testResultPollingToken": "poll-1"}
        assert request.headers["Authorization"] == "Bearer secret"

    @responses.activate
    def test_no_authorization_without_api_key(self):
        """No API key means no Authorization header."""
        responses.add(responses.POST, BASE_URL + RESULTS_PATH, json=POSITIVE_PAYLOAD, status=200)

        VirologyClient(BASE_URL + "/").fetch_test_result("poll-1")

        assert "Authorization" not in responses.calls[0].request.headers

    @responses.activate
    def test_pending_result_returns_none(self, client):
        """A 204 response means the result is not ready yet."""
        responses.add(responses.POST, BASE_URL + RESULTS_PATH, status=204)

        assert client.fetch_test_result("poll-1") is None

    @responses.activate
    def test_malformed_payload(self, client):
        """A malformed payload keeps the raw data but no result."""
        responses.add(responses.POST, BASE_URL + RESULTS_PATH, json={"testResult": "MAYBE"}, status=200)

        fetched = client.fetch_test_result("poll-1")

        assert fetched.result is None
        assert fetched.raw == {"testResult": "MAYBE"}

    @responses.activate
    def test_server_error_raises(self, client):
        """HTTP errors propagate to the caller."""
        responses.add(responses.POST, BASE_URL + RESULTS_PATH, status=500)

        with pytest.raises(requests.HTTPError):
            client.fetch_test_result("poll-1")


class TestExchangeCtaToken:
    """Tests for VirologyClient.exchange_cta_token()."""

    @responses.activate
    def test_returns_result_with_submission_token(self, client):
        """Code exchange returns the result and its key submission token."""
        payload = dict(POSITIVE_PAYLOAD, diagnosisKeySubmissionToken="submit-1")
        responses.add(responses.POST, BASE_URL + CTA_EXCHANGE_PATH, json=payload, status=200)

        fetched = client.exchange_cta_token("f3dzcfdt")

        assert fetched.result.diagnosis_key_submission_token == "submit-1"
        assert json.loads(responses.calls[0].request.body) == {"ctaToken": "f3dzcfdt"}

    @responses.activate
    def test_submission_token_dropped_when_unsupported(self, client):
        payload = dict(
            POSITIVE_PAYLOAD,
            diagnosisKeySubmissionSupported=False,
            diagnosisKeySubmissionToken="submit-1",
        )
        responses.add(responses.POST, BASE_URL + CTA_EXCHANGE_PATH, json=payload, status=200)

        fetched = client.exchange_cta_token("f3dzcfdt")

        assert fetched.result.diagnosis_key_submission_token is None

    @responses.activate
    def test_pending_result_returns_none(self, client):
        responses.add(responses.POST, BASE_URL + CTA_EXCHANGE_PATH, status=204)
        assert client.exchange_cta_token("f3dzcfdt") is None

    @responses.activate
    def test_unknown_code_raises(self, client):
        """The API reports an unknown code as 404."""
        responses.add(responses.POST, BASE_URL + CTA_EXCHANGE_PATH, status=404)

        with pytest.raises(requests.HTTPError):
            client.exchange_cta_token("unknown")
