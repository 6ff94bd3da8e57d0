"""
Errors raised while resolving expense accounts
"""


class InvalidTransactionError(ValueError):
    """Transaction is missing the description needed for matching."""


class AiResponseError(Exception):
    """AI completion could not be parsed or failed schema validation."""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.raw_response = raw_response
