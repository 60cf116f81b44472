#!/usr/bin/env python3
"""Explain what a test result would do to a person's isolation record.

Loads the stored record, decides the store operation for a virology
payload and prints the state before and after. Nothing is written
unless --apply is given.

Usage:
    # Dry run against the record stored in Firestore
    python scripts/explain_result.py --person abc123 --result result.json

    # Dry run against a local snapshot (isolationInfo JSON)
    python scripts/explain_result.py --snapshot record.json --result result.json

    # Pretend it is another day
    python scripts/explain_result.py --snapshot record.json --result result.json --today 2021-07-20

    # Merge the result into the stored record
    python scripts/explain_result.py --person abc123 --result result.json --apply

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
"""

import argparse
import json
import logging
import sys

from isolation_engine.core.calendar import GregorianDay
from isolation_engine.core.isolation import IsolationInfo, parse_isolation_info, parse_test_result
from isolation_engine.core.logical_state import IsolationLogicalState, derive_logical_state
from isolation_engine.core.store_operations import apply_store_operation
from isolation_engine.core.test_result_operation import explain_decision
from isolation_engine.orchestrator import IsolationOrchestrator
from isolation_engine.shell.config_loader import load_config
from isolation_engine.shell.isolation_store import StoreError

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def read_json(path: str) -> dict:
    with open(path, "r") as f:
        return json.load(f)


def describe(state: IsolationLogicalState, today: GregorianDay) -> str:
    """One-line description of an isolation state."""
    if not state.isolating:
        return "not isolating"
    return (
        f"isolating ({state.reason.value}) until {state.isolation_end_day}, "
        f"{state.days_remaining(today)} days remaining"
    )


def main():
    parser = argparse.ArgumentParser(
        description="Explain the store operation a test result would cause",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--person",
        type=str,
        help="Person ID whose stored record to use",
    )
    source.add_argument(
        "--snapshot",
        type=str,
        help="JSON file holding an isolationInfo snapshot",
    )
    parser.add_argument(
        "--result",
        type=str,
        required=True,
        help="JSON file holding a virology API test result payload",
    )
    parser.add_argument(
        "--today",
        type=GregorianDay.parse,
        help="Day to evaluate on, as YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Merge the result into the stored record (requires --person)",
    )
    args = parser.parse_args()

    if args.apply and not args.person:
        parser.error("--apply requires --person")

    config = load_config()
    today = args.today or GregorianDay.today(config.timezone)

    result = parse_test_result(read_json(args.result))
    if result is None:
        logger.error("Malformed test result in %s", args.result)
        return 1

    orchestrator = IsolationOrchestrator(config)

    stored: IsolationInfo | None
    if args.snapshot:
        stored = parse_isolation_info(read_json(args.snapshot))
    else:
        try:
            stored = orchestrator.store.load(args.person)
        except StoreError as e:
            logger.error("%s", e)
            return 1

    state = derive_logical_state(today, stored, config.isolation)
    decision = explain_decision(state, stored, result, config.isolation, today, config.timezone)
    updated = apply_store_operation(decision.operation, stored, result, today, config.timezone)
    after = derive_logical_state(today, updated, config.isolation)

    print(f"Day:       {today}")
    print(f"Result:    {result.test_result.value} {result.test_kit_type.value} ending {result.end_day(config.timezone)}")
    print(f"Before:    {describe(state, today)}")
    print(f"Operation: {decision.operation.value}")
    print(f"Rule:      {decision.reason}")
    print(f"After:     {describe(after, today)}")

    if not args.apply:
        print("\nDry run - nothing written (use --apply to merge)")
        return 0

    processed = orchestrator.process_result(args.person, result, today=today)
    if not processed.success:
        for error in processed.errors:
            logger.error("%s", error)
        return 1

    logger.info("%s", processed.summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
