"""
Turns rows of a transactions CSV (type, client, tx, amount) into Transaction values.

Rows are read lazily in file order. A row that cannot be coerced aborts the
run with MalformedRecordError; a row with an unrecognised type is dropped and
reported to the caller as None.
"""

import csv
import logging
from decimal import ROUND_HALF_EVEN, Decimal, Inexact, InvalidOperation, localcontext
from typing import Dict, Iterator, Optional, Tuple

from errors import InputFileError, MalformedRecordError
from models import AMOUNT_QUANTUM, LEDGER_CONTEXT, MAX_AMOUNT, ZERO, Transaction, TransactionType

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
REQUIRED_COLUMNS = ("type", "client", "tx")


def read_rows(filepath: str) -> Iterator[Tuple[int, Dict[str, str]]]:
    """Yield (line number, trimmed row) pairs from a UTF-8 CSV file."""
    try:
        f = open(filepath, "r", encoding="utf-8-sig", newline="")
    except OSError as e:
        raise InputFileError(filepath, e) from e

    with f:
        reader = csv.DictReader(f)
        try:
            if reader.fieldnames is None:
                return
            reader.fieldnames = [name.strip() for name in reader.fieldnames]
            missing = [column for column in REQUIRED_COLUMNS if column not in reader.fieldnames]
            if missing:
                raise MalformedRecordError(1, f"missing columns {', '.join(missing)}")

            for row in reader:
                # Surplus values land under the None key, short rows yield None values.
                normalized = {k: (v or "").strip() for k, v in row.items() if k is not None}
                yield reader.line_num, normalized
        except csv.Error as e:
            raise MalformedRecordError(reader.line_num, str(e)) from e
        except UnicodeDecodeError as e:
            raise MalformedRecordError(reader.line_num + 1, f"not valid UTF-8 ({e.reason})") from e


def parse_row(row: Dict[str, str], line: int = 0) -> Optional[Transaction]:
    """
    Parse a trimmed CSV row into a Transaction.

    Every field is coerced before the type is checked, so a malformed row is
    fatal even when its type is unknown.
    Returns None when the type is not one of the known transaction types.
    Raises MalformedRecordError when any field cannot be coerced.
    """
    client_id = _parse_id(row, "client", MAX_CLIENT_ID, line)
    transaction_id = _parse_id(row, "tx", MAX_TRANSACTION_ID, line)
    amount = parse_amount(row.get("amount", ""), line)

    transaction_type_str = row.get("type", "").lower()
    try:
        transaction_type = TransactionType(transaction_type_str)
    except ValueError:
        logger.warning(f"Line {line}: unknown transaction type {transaction_type_str!r}, skipping")
        return None

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def parse_amount(amount_str: str, line: int = 0) -> Decimal:
    """Parse an amount to four decimal places. Empty means zero."""
    if not amount_str:
        return ZERO
    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise MalformedRecordError(line, f"invalid amount {amount_str!r}") from e

    if not amount.is_finite():
        raise MalformedRecordError(line, f"invalid amount {amount_str!r}")
    if amount.copy_abs() > MAX_AMOUNT:
        raise MalformedRecordError(line, f"amount {amount_str!r} exceeds the maximum of {MAX_AMOUNT:f}")

    with localcontext(LEDGER_CONTEXT) as ctx:
        # Rounding to four places is the intended conversion here.
        ctx.traps[Inexact] = False
        return amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN)


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """Yield every recognised transaction in the file, in file order."""
    for line, row in read_rows(filepath):
        transaction = parse_row(row, line)
        if transaction is not None:
            yield transaction


def _parse_id(row: Dict[str, str], column: str, maximum: int, line: int) -> int:
    value = row.get(column, "")
    try:
        parsed = int(value)
    except ValueError as e:
        raise MalformedRecordError(line, f"invalid {column} {value!r}", row) from e

    if not 0 <= parsed <= maximum:
        raise MalformedRecordError(line, f"{column} {parsed} out of range 0..{maximum}", row)
    return parsed
