"""
Custom Exception Hierarchy - Domain-specific error types

Provides typed exceptions for the failure modes of the poll service.
All custom exceptions inherit from DinePollError for easy catching.

- Exceptions are data: include context for debugging
- Routes translate them into HTTP status codes
"""

from typing import Optional, Dict, Any


class DinePollError(Exception):
    """Base exception for all dinepoll errors

    Carries a context dict rendered into str() and an is_retryable flag
    so callers can tell transient failures from permanent ones.
    """

    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """True for transient failures (network, rate limits, timeouts)"""
        return self._retryable

    @property
    def message(self) -> str:
        """Message without the rendered context suffix"""
        return super().__str__()

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


# ========== Database Errors ==========


class DatabaseError(DinePollError):
    """Database operation failures"""
    pass


class DatabaseConnectionError(DatabaseError):
    """Failed to establish or maintain database connection"""
    _retryable = True


class DataIntegrityError(DatabaseError):
    """Data integrity constraint violation (unique, foreign key, check)"""

    def __init__(self, message: str, table: Optional[str] = None, constraint: Optional[str] = None):
        self.table = table
        self.constraint = constraint
        context = {}
        if table:
            context['table'] = table
        if constraint:
            context['constraint'] = constraint
        super().__init__(message, context)


# ========== Places Service Errors ==========


class PlacesError(DinePollError):
    """Places lookup service failures

    Includes the operation (geocode, nearby, details) that failed.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        location: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.operation = operation
        self.location = location
        self.original_error = original_error

        context = {'operation': operation}
        if location:
            context['location'] = location
        if original_error:
            context['original_error'] = str(original_error)

        super().__init__(message, context)


class PlacesHTTPError(PlacesError):
    """HTTP request to the places service failed

    Retryable for 5xx responses, timeouts and connection errors.
    Not retryable for 4xx responses.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
        location: Optional[str] = None,
    ):
        self.status_code = status_code
        super().__init__(message, operation, location)
        if status_code:
            self.context['status_code'] = status_code

    @property
    def is_retryable(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code >= 500


class PlacesAPIError(PlacesError):
    """Places service answered with a non-OK status (REQUEST_DENIED, INVALID_REQUEST, ...)"""

    def __init__(self, message: str, operation: str, status: str, location: Optional[str] = None):
        self.status = status
        super().__init__(message, operation, location)
        self.context['status'] = status

    @property
    def is_retryable(self) -> bool:
        return self.status in ("OVER_QUERY_LIMIT", "UNKNOWN_ERROR")


# ========== Configuration Errors ==========


class ConfigurationError(DinePollError):
    """Missing env var, invalid configuration value or missing API key"""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        context = {}
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)


# ========== Validation Errors ==========


class ValidationError(DinePollError):
    """Data validation failures"""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value

        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)

        super().__init__(message, context)


class InvalidBallotError(ValidationError):
    """Ballot is not a complete ranking of the poll's candidates

    Examples:
    - Ranks an unknown restaurant
    - Leaves a restaurant unranked or ranks it twice
    - Ranks are not a permutation of 1..N
    """

    def __init__(
        self,
        message: str,
        voter_id: Optional[str] = None,
        candidate_id: Optional[str] = None,
    ):
        self.voter_id = voter_id
        self.candidate_id = candidate_id
        super().__init__(message, field="rankings")
        if voter_id:
            self.context['voter_id'] = voter_id
        if candidate_id:
            self.context['candidate_id'] = candidate_id


# ========== Poll Errors ==========


class PollError(DinePollError):
    """Poll state prevents the requested operation"""

    def __init__(self, message: str, poll_id: Optional[str] = None):
        self.poll_id = poll_id
        context = {}
        if poll_id:
            context['poll_id'] = poll_id
        super().__init__(message, context)


class PollNotFoundError(PollError):
    """No poll with the given id"""
    pass


class PollClosedError(PollError):
    """Poll is no longer active"""
    pass


class PollFullError(PollError):
    """Poll has reached its maximum number of voters"""

    def __init__(self, message: str, poll_id: Optional[str] = None, max_voters: Optional[int] = None):
        self.max_voters = max_voters
        super().__init__(message, poll_id)
        if max_voters is not None:
            self.context['max_voters'] = max_voters


class NotEnoughRestaurantsError(PollError):
    """Catalog holds fewer restaurants than the poll asked for"""

    def __init__(self, message: str, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(message)
        self.context.update({'requested': requested, 'available': available})

