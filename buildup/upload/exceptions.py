"""
Simple exceptions for upload functionality.
"""

from typing import Optional


class BuildupError(Exception):
    """Base agent error."""
    pass


class ConfigurationError(BuildupError):
    """Missing or invalid agent configuration."""
    pass


class BuildValidationError(BuildupError):
    """Build path is empty or not a recognized artifact."""
    pass


class PackagingError(BuildupError):
    """Build artifact could not be read or archived."""
    pass


class SubmissionError(BuildupError):
    """Request to the remote service failed."""

    retryable = False

    def __init__(self, message, **kwargs):
        super().__init__(message)
        self.url: Optional[str] = kwargs.get('url')
        self.status_code: Optional[int] = kwargs.get('status_code')
        self.retryable = kwargs.get('retryable', self.retryable)


class APIConnectionError(SubmissionError):
    """No response was received."""

    retryable = True


class AuthenticationError(SubmissionError):
    """Upload token rejected (HTTP 401)."""

    def __init__(self, message="Upload token is invalid or missing!", **kwargs):
        kwargs['retryable'] = False
        super().__init__(message, **kwargs)


class WAFBlockedError(SubmissionError):
    """Request blocked by the web application firewall in front of the API."""

    def __init__(self, message, **kwargs):
        kwargs['retryable'] = False
        super().__init__(message, **kwargs)


class HTTPStatusError(SubmissionError):
    """Non-success HTTP status."""
    pass
