"""
Ledger error hierarchy

Callers branch on the exception class, never on message text.
"""
from typing import Optional


class LedgerError(Exception):
    """Any failure talking to the ledger (transport or remote)."""


class FireflyError(LedgerError):
    """Firefly III answered with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Error while communicating with Firefly III: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class AccountConflictError(FireflyError):
    """Account creation rejected because the name is already taken."""

    def __init__(self, name: str, status_code: int = 422, body: str = "", field: Optional[str] = "name"):
        super().__init__(status_code, body)
        self.name = name
        self.field = field
