"""Errors raised while deriving quotation values from a form submission.

Any of these aborts the whole transformation; callers never receive a
partially populated mapping.
"""
from typing import Any, Optional


class QuoteInputError(ValueError):
    """Base class for submission data that cannot be turned into a quote."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class MissingRequiredField(QuoteInputError):
    pass


class InvalidDate(QuoteInputError):
    pass


class UnknownTrialType(QuoteInputError):
    pass
