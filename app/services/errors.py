"""Exceptions raised by the localization services.

Missing translations are not errors: the key itself is returned as the
value. Only validation failures and store failures are raised.
"""


class LocalizationError(Exception):
    """Base class for localization errors."""


class ValidationError(LocalizationError):
    """A translation failed validation (empty value, variable mismatch...)."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class StoreReadError(LocalizationError):
    """The store failed on a read. Only raised by reads that ask for it."""


class StoreWriteError(LocalizationError):
    """The store failed on a write.

    `written` is the number of rows committed by earlier chunks before the
    failure, so bulk callers can still report partial success.
    """

    def __init__(self, message, written=0):
        super().__init__(message)
        self.written = written
