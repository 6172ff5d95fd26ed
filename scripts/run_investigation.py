#!/usr/bin/env python3
"""
LeakTrace Investigation Runner

Runs one investigation over a directory of JSON export files
(invoices.json, system_events.json, transactions.json, churn_events.json)
and prints or writes the resulting Investigation JSON.

Usage:
    python scripts/run_investigation.py --entity billing-service
    python scripts/run_investigation.py --data-dir ./data --entity billing-service \
        --instant 2026-02-16T23:59:59Z --baseline-end 2026-02-10 --output investigation.json
"""

import argparse
import sys
from datetime import date, datetime
from pathlib import Path

import structlog

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from leaktrace.config import get_settings
from leaktrace.engine.orchestrator import InvestigationOrchestrator, end_of_last_observed_day
from leaktrace.storage import JsonRecordSource
from leaktrace.utils.logging import configure_cli_logging, investigation_context

logger = structlog.get_logger()


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Run a LeakTrace investigation for one entity"
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(settings.data_dir),
        help=f"Directory holding the JSON record files (default: {settings.data_dir})",
    )
    parser.add_argument(
        "--entity",
        type=str,
        required=True,
        help="Entity to investigate (e.g. billing-service)",
    )
    parser.add_argument(
        "--instant",
        type=datetime.fromisoformat,
        default=None,
        help="Analysis instant, ISO 8601 (default: end of the last observed day)",
    )
    parser.add_argument(
        "--baseline-end",
        type=date.fromisoformat,
        default=None,
        help="First day excluded from the drift baseline, YYYY-MM-DD",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the investigation JSON here instead of stdout",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point for the investigation runner."""
    args = parse_args(argv)

    # Log to stderr so stdout carries only the investigation JSON
    configure_cli_logging(sys.stderr)

    try:
        snapshot = JsonRecordSource(args.data_dir).load_snapshot()
    except ValueError as e:
        # Malformed records and invalid JSON files both surface as ValueError
        logger.error("investigation_aborted", reason=str(e))
        return 2

    instant = args.instant or end_of_last_observed_day(
        snapshot.billing, snapshot.events, snapshot.transactions, snapshot.churn
    )
    if instant is None:
        logger.error("investigation_aborted", reason="no records found", data_dir=str(args.data_dir))
        return 1

    orchestrator = InvestigationOrchestrator(get_settings().analysis_config())
    with investigation_context(args.entity, instant):
        investigation = orchestrator.investigate(
            args.entity,
            billing=snapshot.billing,
            events=snapshot.events,
            transactions=snapshot.transactions,
            churn=snapshot.churn,
            analysis_instant=instant,
            baseline_end=args.baseline_end,
        )

    payload = investigation.model_dump_json(indent=2)
    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info(
            "investigation_written",
            path=str(args.output),
            verdict=investigation.verdict.value,
        )
    else:
        print(payload)

    return 0


if __name__ == "__main__":
    sys.exit(main())
