import csv
import logging
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Callable, Dict, Iterator, Optional, TextIO

from models import MONEY_MOVING_TYPES, Transaction, TransactionType

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 65535
MAX_TRANSACTION_ID = 4294967295

REQUIRED_COLUMNS = ("type", "client", "tx")


def parse_amount(raw: str, scale: int = 4) -> Decimal:
    """Parse a positive amount, truncated to `scale` fractional digits."""
    amount = Decimal(raw)
    if not amount.is_finite():
        raise ValueError(f"amount must be finite, got {raw!r}")
    amount = amount.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_DOWN)
    if amount <= 0:
        raise ValueError(f"amount must be positive, got {raw!r}")
    return amount


def _parse_id(raw: str, name: str, upper: int) -> int:
    value = int(raw)
    if not 0 <= value <= upper:
        raise ValueError(f"{name} out of range: {value}")
    return value


def parse_csv_row(row: Dict[Optional[str], object], scale: int = 4) -> Transaction:
    """
    Parse a CSV row into Transaction.

    Raises ValueError (or KeyError for a missing column) when the row is
    malformed; decimal.InvalidOperation is folded into ValueError.
    """
    if None in row:
        raise ValueError(f"too many fields: {row[None]!r}")

    normalized = {k.strip(): (v or "").strip() for k, v in row.items()}
    for column in REQUIRED_COLUMNS:
        if not normalized.get(column):
            raise KeyError(column)

    transaction_type = TransactionType(normalized["type"].lower())
    client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type in MONEY_MOVING_TYPES:
        amount_str = normalized.get("amount", "")
        if not amount_str:
            raise ValueError(f"{transaction_type.value} requires an amount")
        try:
            amount = parse_amount(amount_str, scale)
        except InvalidOperation:
            raise ValueError(f"invalid amount {amount_str!r}") from None

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def read_transactions(
    stream: TextIO,
    scale: int = 4,
    on_reject: Optional[Callable[[int, Dict, Exception], None]] = None,
) -> Iterator[Transaction]:
    """
    Lazily yield transactions from a CSV stream, one row at a time.
    Malformed rows are skipped; `on_reject` is told about each one.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    if reader.fieldnames is not None:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]

    for row in reader:
        try:
            yield parse_csv_row(row, scale)
        except (KeyError, ValueError) as e:
            if on_reject is not None:
                on_reject(reader.line_num, row, e)
