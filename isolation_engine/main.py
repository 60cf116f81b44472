"""Cloud Function Entry Points.

This module provides the entry points for Google Cloud Functions.
They are thin wrappers that load configuration and invoke the orchestrator.
"""

import logging
import os
import json
from typing import Any

import functions_framework
from flask import Request

from isolation_engine.core.config import AppConfig
from isolation_engine.core.isolation import parse_test_result
from isolation_engine.orchestrator import IsolationOrchestrator, ProcessingResult
from isolation_engine.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> AppConfig:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("VIROLOGY_BASE_URL"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _process(orchestrator: IsolationOrchestrator, body: dict[str, Any]) -> ProcessingResult | str:
    """Route a request body to the matching orchestrator call.

    Returns:
        ProcessingResult, or an error message for a bad request
    """
    person_id = body.get("personId")
    if not person_id:
        return "Missing personId"

    if "testResult" in body:
        result = parse_test_result(body["testResult"] or {})
        if result is None:
            return "Malformed testResult"
        return orchestrator.process_result(person_id, result)

    if body.get("pollingToken"):
        return orchestrator.poll_test_result(person_id, body["pollingToken"])

    if body.get("ctaToken"):
        return orchestrator.submit_test_code(person_id, body["ctaToken"])

    return "Expected one of testResult, pollingToken or ctaToken"


@functions_framework.http
def test_result_received(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point for an incoming test result.

    The JSON body names the person and carries either the result itself,
    a polling token, or a manually entered test code.

    Args:
        request: Flask request object

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    body = request.get_json(silent=True) or {}

    try:
        config = _get_config()
        orchestrator = IsolationOrchestrator(config)
        result = _process(orchestrator, body)

        if isinstance(result, str):
            logger.warning("Rejected request: %s", result)
            return {"status": "error", "message": result}, 400

        response: dict[str, Any] = {
            "status": "success" if result.success else "error",
            "summary": result.summary,
            "operation": result.operation.value if result.operation else None,
            "isolating": result.state_after.isolating if result.state_after else None,
            "reason": result.state_after.reason.value if result.state_after else None,
        }

        if result.state_after and result.state_after.isolation_end_day:
            response["isolation_end_day"] = str(result.state_after.isolation_end_day)

        if result.errors:
            response["errors"] = result.errors

        logger.info("Completed: %s", result.summary)

        return response, 200 if result.success else 500

    except Exception as e:
        logger.exception("Unexpected error while merging test result")
        return {
            "status": "error",
            "message": str(e),
        }, 500


@functions_framework.http
def daily_housekeeping(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point for daily housekeeping.

    This function is triggered by Cloud Scheduler once a day.

    Args:
        request: Flask request object (not used, but required by framework)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    logger.info("Starting daily housekeeping")

    try:
        config = _get_config()
        orchestrator = IsolationOrchestrator(config)
        results = orchestrator.run_daily_housekeeping()

        errors = [error for r in results for error in r.errors]
        response: dict[str, Any] = {
            "status": "success" if not errors else "partial_failure",
            "records_checked": len(results),
            "tests_completed": sum(1 for r in results if r.completed),
            "records_deleted": sum(1 for r in results if r.deleted),
        }

        if errors:
            response["errors"] = errors

        status_code = 200 if not errors else 207  # 207 = Multi-Status
        return response, status_code

    except Exception as e:
        logger.exception("Unexpected error in daily housekeeping")
        return {
            "status": "error",
            "message": str(e),
        }, 500


# For local testing
if __name__ == "__main__":
    class MockRequest:
        def get_json(self, silent: bool = False) -> dict[str, Any]:
            return {}

    response, status = daily_housekeeping(MockRequest())
    print(f"\nResponse ({status}):")
    print(json.dumps(response, indent=2))
