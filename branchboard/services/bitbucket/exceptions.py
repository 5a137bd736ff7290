"""Exceptions for Bitbucket service."""


class BitbucketAPIError(Exception):
    """Error from Bitbucket API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(BitbucketAPIError):
    """Workspace or access token is not configured."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Bitbucket configuration not set. Please configure workspace and access token."
        )


class HttpError(BitbucketAPIError):
    """Non-success response other than 429. Never retried."""

    def __init__(self, status_code: int, status_text: str = ""):
        self.status_text = status_text
        message = f"HTTP {status_code}: {status_text}" if status_text else f"HTTP {status_code}"
        super().__init__(message, status_code)


class RateLimitExceeded(BitbucketAPIError):
    """Still receiving 429 after every retry was spent."""

    def __init__(self, retry_after: float | None = None):
        self.retry_after = retry_after  # Seconds suggested by the last 429, if any
        super().__init__("Rate limit exceeded. Maximum retries reached.", 429)


class NetworkError(BitbucketAPIError):
    """Request could not be sent after every retry was spent."""


class CacheError(Exception):
    """Key-value store could not be read or written.

    Raised by stores only. TTLCache treats it as a miss and never lets it escape.
    """
