# =============================================================================
# FILE: src/expressflow/exceptions.py
# Error types raised by the quote workflow
# =============================================================================

from typing import List, Optional


class ExpressFlowError(Exception):
    """Base class for workflow errors."""


class ValidationError(ExpressFlowError):
    """User input rejected. Carries every message collected for the form."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class QuoteValidationError(ValidationError):
    pass


class PricingValidationError(ValidationError):
    pass


class StatusTransitionError(ExpressFlowError):
    pass


class QuoteNotFoundError(ExpressFlowError):
    pass


class UserNotFoundError(ExpressFlowError):
    pass


class AuthenticationError(ExpressFlowError):
    pass


class FirstAccessRequired(AuthenticationError):
    """The collaborator exists but has not chosen a password yet."""


class AuthorizationError(ExpressFlowError):
    pass


class StorageError(ExpressFlowError):
    pass
