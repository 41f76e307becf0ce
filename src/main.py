import argparse
import csv
import logging
import sys
from decimal import Decimal
from typing import Dict, List, Optional, TextIO

from pydantic import ValidationError

from models import AccountSnapshot
from payments_engine import PaymentsEngine
from settings import LOG_LEVELS, Settings, get_settings

logger = logging.getLogger(__name__)

OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]


def format_decimal(value: Decimal, scale: int = 4) -> str:
    """Format decimal with exactly `scale` fractional digits."""
    return f"{value.quantize(Decimal(1).scaleb(-scale)):f}"


def write_accounts(accounts: Dict[int, AccountSnapshot], stream: TextIO, scale: int = 4) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        writer.writerow([
            client_id,
            format_decimal(account.available, scale),
            format_decimal(account.held, scale),
            format_decimal(account.total, scale),
            str(account.locked).lower(),
        ])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-ledger",
        description="Replay a CSV of transactions and print the final account balances.",
    )
    parser.add_argument("input", help="path to the transactions CSV")
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        default=None,
        help="report every skipped record on stderr",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="stderr logging level (default: WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        parser.error(f"invalid PAYMENTS_* configuration: {e}")

    overrides = {}
    if args.diagnostics is not None:
        overrides["diagnostics"] = args.diagnostics
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if overrides:
        settings = Settings(**{**settings.model_dump(), **overrides})

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(settings=settings)
    try:
        accounts = engine.process_file(args.input)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 1

    write_accounts(accounts, sys.stdout, settings.amount_scale)
    return 0


if __name__ == "__main__":
    sys.exit(main())
