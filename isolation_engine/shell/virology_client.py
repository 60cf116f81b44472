"""Virology API Client - Imperative Shell.

This module handles HTTP communication with the virology testing API,
which hands out test results for a polling token or a manually entered
test code. All I/O is contained here; parsing and decisions are in the
core module.
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests

from isolation_engine.core.isolation import VirologyStateTestResult, parse_test_result


logger = logging.getLogger(__name__)


# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 30

RESULTS_PATH = "/virology-test/v2/results"
CTA_EXCHANGE_PATH = "/virology-test/v2/cta-exchange"


@dataclass
class FetchedTestResult:
    """A test result fetched from the virology API.

    Attributes:
        result: Parsed result, or None if the payload was malformed
        raw: Raw JSON payload as received
    """
    result: VirologyStateTestResult | None
    raw: dict[str, Any]


class VirologyClient:
    """Client for fetching test results from the virology API.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize virology client.

        Args:
            base_url: Virology API base URL
            api_key: Bearer token sent with every request
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, path: str, body: dict[str, Any]) -> requests.Response:
        response = requests.post(
            f"{self.base_url}{path}",
            json=body,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    def fetch_test_result(self, polling_token: str) -> FetchedTestResult | None:
        """Poll for the result of a test ordered through the app.

        This method performs HTTP I/O.

        Args:
            polling_token: Token issued when the test was ordered

        Returns:
            The fetched result, or None while the result is still pending

        Raises:
            requests.RequestException: If the request fails
        """
        logger.info("Polling virology API for test result")

        response = self._post(RESULTS_PATH, {"testResultPollingToken": polling_token})

        if response.status_code == 204:
            logger.info("Test result not available yet")
            return None

        data = response.json()
        result = parse_test_result(data, diagnosis_key_submission_token=polling_token)

        if result is None:
            logger.warning("Virology API returned a malformed test result")
        else:
            logger.info(
                "Fetched %s %s test result",
                result.test_result.value,
                result.test_kit_type.value,
            )

        return FetchedTestResult(result=result, raw=data)

    def exchange_cta_token(self, cta_token: str) -> FetchedTestResult | None:
        """Exchange a manually entered test code for its result.

        This method performs HTTP I/O.

        Args:
            cta_token: Code the person typed in

        Returns:
            The fetched result, or None if the result is not ready yet

        Raises:
            requests.RequestException: If the request fails (including an
                unknown code, which the API reports as 404)
        """
        logger.info("Exchanging test code with virology API")

        response = self._post(CTA_EXCHANGE_PATH, {"ctaToken": cta_token})

        if response.status_code == 204:
            logger.info("Test result for code not available yet")
            return None

        data = response.json()
        result = parse_test_result(
            data,
            diagnosis_key_submission_token=data.get("diagnosisKeySubmissionToken"),
        )

        if result is None:
            logger.warning("Virology API returned a malformed test result for code")

        return FetchedTestResult(result=result, raw=data)
