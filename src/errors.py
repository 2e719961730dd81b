from typing import Dict, Optional


class LedgerError(Exception):
    """Base class for errors that abort a whole replay run."""


class InputFileError(LedgerError):
    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"cannot read {path}: {cause}")


class MalformedRecordError(LedgerError):
    """A row that cannot be coerced into a Transaction."""

    def __init__(self, line: int, message: str, row: Optional[Dict[str, str]] = None):
        self.line = line
        self.row = row
        super().__init__(f"line {line}: {message}")
