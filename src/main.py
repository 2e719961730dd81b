import logging
import sys

from pydantic import ValidationError

from errors import LedgerError
from ledger import LedgerEngine
from report import write_report
from settings import LedgerSettings


def main(argv=None) -> int:
    argv = sys.argv if argv is None else argv
    if len(argv) != 2:
        print("Usage: python main.py <input.csv>", file=sys.stderr)
        return 1

    try:
        settings = LedgerSettings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    filepath = argv[1]
    engine = LedgerEngine(settings=settings)
    try:
        accounts = engine.process_file(filepath)
    except LedgerError as e:
        print(f"Error processing file: '{filepath}', err: {e}", file=sys.stderr)
        return 1

    write_report(accounts, sys.stdout)

    if settings.print_summary:
        print(
            f"Processed: {engine.stats.processed}, "
            f"Rejected: {engine.stats.rejected}",
            file=sys.stderr
        )
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
