from __future__ import annotations


class TrackerError(Exception):
    pass


class ValidationFailure(TrackerError, ValueError):
    """A command payload was rejected before it reached a store."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class LedgerParseError(TrackerError):
    def __init__(self, ledger: str, path, cause: Exception):
        super().__init__(f"Could not parse {ledger} ledger at {path}: {cause}")
        self.ledger = ledger
        self.path = path
        self.cause = cause
