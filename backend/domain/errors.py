# backend/domain/errors.py
"""Errors raised by the fulfillment engine.

Every error carries a stable ``kind`` and a human readable ``reason``. A
failed operation never leaves partial writes behind: the unit of work it
ran in is rolled back before the error reaches the caller.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    UNAUTHORIZED = "Unauthorized"
    NO_MATCH = "NoMatch"
    CODE_MISMATCH = "CodeMismatch"
    DOMAIN_RULE_VIOLATION = "DomainRuleViolation"


class FulfillmentError(Exception):
    """Base exception for all engine errors."""

    kind: ErrorKind = ErrorKind.DOMAIN_RULE_VIOLATION
    default_reason = "Operation rejected."

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "detail": self.reason}


class NotFoundError(FulfillmentError):
    """Raised when a listing, order, claim or actor does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_reason = "Resource not found."


class InvalidStateError(FulfillmentError):
    """Raised when the requested transition is not legal from the current status."""

    kind = ErrorKind.INVALID_STATE
    default_reason = "Transition not allowed from the current status."


class UnauthorizedError(FulfillmentError):
    """Raised when the actor is not the counterparty or role the action requires."""

    kind = ErrorKind.UNAUTHORIZED
    default_reason = "You are not allowed to perform this action."


class NoMatchError(FulfillmentError):
    """Raised when delivery matching finds no eligible actor."""

    kind = ErrorKind.NO_MATCH
    default_reason = "No delivery personnel available."


class CodeMismatchError(FulfillmentError):
    """Raised when a presented pickup code differs from the stored one."""

    kind = ErrorKind.CODE_MISMATCH
    default_reason = "Invalid pickup code."


class DomainRuleViolationError(FulfillmentError):
    """Raised when a business rule forbids the request."""

    kind = ErrorKind.DOMAIN_RULE_VIOLATION
    default_reason = "Validation failed."
