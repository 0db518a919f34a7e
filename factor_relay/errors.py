"""
Typed error hierarchy.

Every error carries a machine-readable `code` and the HTTP status the API
layer renders it with, so callers can branch without parsing messages.
"""
from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for all application-level errors."""
    http_status: int = 500
    code: str = 'INTERNAL_ERROR'

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload = {
            'code': self.code,
            'message': self.message,
            'status_code': self.http_status,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class ConfigError(RelayError):
    code = 'CONFIG_ERROR'


class ValidationError(RelayError):
    http_status = 400
    code = 'VALIDATION_ERROR'


class NotFoundError(RelayError):
    http_status = 404
    code = 'NOT_FOUND'


class NoFactorConfigured(NotFoundError):
    code = 'NO_FACTOR_CONFIGURED'

    def __init__(self, item_id: str):
        super().__init__(f"No factor found for item {item_id}", details={'item_id': item_id})


class InvalidOrMissingInput(RelayError):
    http_status = 422
    code = 'INVALID_OR_MISSING_INPUT'

    def __init__(self, item_id: str, raw_value: Optional[str] = None):
        if raw_value is None:
            message = f"No input value found for item {item_id}"
        else:
            message = f"Invalid input value for item {item_id}: {raw_value!r}"
        super().__init__(message, details={'item_id': item_id, 'raw_value': raw_value})


class RemoteError(RelayError):
    """Remote board call failed after the retry policy gave up."""
    http_status = 502
    code = 'REMOTE_ERROR'

    def __init__(self, message: str, attempts: int = 1, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.attempts = attempts
        self.status_code = status_code
        details = dict(details or {})
        details.setdefault('attempts', attempts)
        if status_code is not None:
            details.setdefault('remote_status', status_code)
        super().__init__(message, details=details)


class RemoteUnreachable(RemoteError):
    """No response was received (connection error or timeout)."""
    http_status = 503
    code = 'REMOTE_UNREACHABLE'


class RemoteRejected(RemoteError):
    """Non-2xx status, or a GraphQL `errors` array in the response."""
    code = 'REMOTE_REJECTED'


class RemoteNotFound(NotFoundError):
    """Query succeeded but matched no item, board or column."""
    code = 'REMOTE_NOT_FOUND'


class RemoteWriteFailed(RelayError):
    http_status = 502
    code = 'REMOTE_WRITE_FAILED'


class PersistenceError(RelayError):
    code = 'PERSISTENCE_ERROR'
