"""
Error taxonomy.

Every error carries a machine-readable code and the HTTP status the API layer
renders it with. Field-level malformation never raises; these are reserved for
whole-request problems.
"""


class LeadRadarError(Exception):
    """Base class for all errors surfaced to API callers."""
    code = 'INTERNAL_ERROR'
    status_code = 500

    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self):
        body = {'success': False, 'error': self.message, 'code': self.code}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(LeadRadarError):
    code = 'VALIDATION_ERROR'
    status_code = 400


class AuthenticationError(LeadRadarError):
    code = 'AUTHENTICATION_ERROR'
    status_code = 401


class AuthorizationError(LeadRadarError):
    code = 'AUTHORIZATION_ERROR'
    status_code = 403


class NotFoundError(LeadRadarError):
    code = 'NOT_FOUND'
    status_code = 404


class RateLimitError(LeadRadarError):
    code = 'RATE_LIMIT_EXCEEDED'
    status_code = 429

    def __init__(self, message='Rate limit exceeded', retry_after=None):
        self.retry_after = retry_after
        details = {'retry_after': retry_after} if retry_after is not None else None
        super().__init__(message, details=details)
