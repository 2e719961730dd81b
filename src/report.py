import csv
from decimal import Decimal, localcontext
from typing import Mapping, TextIO

from models import AMOUNT_QUANTUM, LEDGER_CONTEXT, Balances

HEADER = ("client", "available", "held", "total", "locked")


def format_amount(value: Decimal) -> str:
    """Format an amount with exactly 4 decimal places."""
    with localcontext(LEDGER_CONTEXT):
        return f"{value.quantize(AMOUNT_QUANTUM):f}"


def format_row(balances: Balances) -> list:
    return [
        str(balances.client),
        format_amount(balances.available),
        format_amount(balances.held),
        format_amount(balances.total),
        str(balances.locked).lower(),
    ]


def write_report(accounts: Mapping[int, Balances], stream: TextIO) -> None:
    """Write one CSV row per client, ordered by client id."""
    # Rows are rendered before anything is written, so a failure leaves no partial table.
    rows = [format_row(accounts[client_id]) for client_id in sorted(accounts.keys())]
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    writer.writerows(rows)
