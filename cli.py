import argparse
import sys
from typing import List, Optional

import structlog

from config import get_settings
from logging_config import configure_logging
from records import read_records, write_accounts
from services import get_transaction_engine

logger = structlog.get_logger()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payment-engine",
        description="Replay a CSV of transactions and print the resulting client accounts as CSV.",
    )
    parser.add_argument("input", help="Path to the transactions CSV")
    parser.add_argument("--log-file", default=None, help="Write logs to this file instead of stderr")
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level (default: from LOG_LEVEL)",
    )
    parser.add_argument(
        "--unsorted",
        action="store_true",
        help="Emit accounts in ledger order instead of sorted by client id",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)

    overrides = {}
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    settings = get_settings().model_copy(update=overrides)
    configure_logging(settings)

    engine = get_transaction_engine()
    try:
        with open(args.input, newline="", encoding="utf-8-sig") as file:
            summary = engine.replay(read_records(file))
    except (OSError, ValueError) as e:
        logger.error("Could not read transactions", path=args.input, error=str(e))
        print(f"payment-engine: {e}", file=sys.stderr)
        return 1

    rows = write_accounts(
        sys.stdout,
        engine.snapshots(
            sort=settings.sort_output and not args.unsorted,
            places=settings.output_precision,
        ),
    )
    logger.info(
        "Accounts written",
        accounts=rows,
        processed=summary.processed,
        rejected=summary.rejected
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
