"""Phorest API client exceptions."""


class PhorestError(Exception):
    """Base exception for all Phorest API errors."""

    def __init__(self, message, code=None, details=None, is_retryable=False):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.is_retryable = is_retryable


class AuthenticationError(PhorestError):
    """Missing or rejected credentials."""

    def __init__(self, message='Authentication failed', **kwargs):
        super().__init__(message, is_retryable=False, **kwargs)


class NetworkError(PhorestError):
    """Connection refused or dropped."""

    def __init__(self, message='Network error', **kwargs):
        super().__init__(message, is_retryable=True, **kwargs)


class TimeoutError(NetworkError):
    """Request timed out."""

    def __init__(self, message='Request timed out', **kwargs):
        super().__init__(message, **kwargs)


class RateLimitError(PhorestError):
    """HTTP 429 from the API gateway."""

    def __init__(self, message='Rate limit exceeded', retry_after=None, **kwargs):
        super().__init__(message, is_retryable=True, **kwargs)
        self.retry_after = retry_after


class APIError(PhorestError):
    """Non-success response from Phorest API."""

    def __init__(self, message='API error', status_code=None, **kwargs):
        is_retryable = bool(status_code and status_code >= 500)
        super().__init__(message, is_retryable=is_retryable, **kwargs)
        self.status_code = status_code


class ParseError(PhorestError):
    """Failed to parse API response."""

    def __init__(self, message='Failed to parse response', **kwargs):
        super().__init__(message, is_retryable=False, **kwargs)
