"""
Service results.

Guard and validation failures in the service layer are expected outcomes
(a job was claimed by someone else, a rating was already submitted) and are
returned as a rejected ``ServiceResult`` instead of being raised. Views turn
the rejection code into an HTTP status and a user-facing message.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class RejectionCode:
    NOT_FOUND = 'not_found'
    NOT_PARTY = 'not_party'
    INVALID_STATE = 'invalid_state'
    UNAVAILABLE = 'unavailable'
    ALREADY_RATED = 'already_rated'
    INVALID_RATING = 'invalid_rating'
    INVALID_AMOUNT = 'invalid_amount'
    INVALID_INPUT = 'invalid_input'
    CONSENT_REQUIRED = 'consent_required'


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    message: str = ''
    code: Optional[str] = None
    data: Any = None
    errors: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self):
        return self.success

    @classmethod
    def ok(cls, data=None, message=''):
        return cls(success=True, message=message, data=data)

    @classmethod
    def rejected(cls, code, message, errors=None, data=None):
        return cls(success=False, message=message, code=code, data=data, errors=errors or {})
