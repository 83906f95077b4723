"""Typed exception hierarchy for aggregator errors.

Provides structured exceptions for differentiated error handling
(re-authentication required vs revoked tokens vs transient network
errors vs malformed data).
"""

ITEM_LOGIN_REQUIRED = "ITEM_LOGIN_REQUIRED"
INVALID_ACCESS_TOKEN = "INVALID_ACCESS_TOKEN"


class AggregatorError(Exception):
    """Base exception for all aggregator-related errors.

    Carries the aggregator's machine-readable ``error_code`` (if any) so
    callers can surface it to clients.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "",
        status_code: int | None = None,
    ):
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        return False


class AggregatorAuthError(AggregatorError):
    """The stored access token can no longer be used as-is."""

    pass


class ItemLoginRequiredError(AggregatorAuthError):
    """The institution requires fresh user consent (Link update mode)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, error_code=ITEM_LOGIN_REQUIRED, status_code=status_code)


class InvalidAccessTokenError(AggregatorAuthError):
    """The access token is no longer valid for this Item."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, error_code=INVALID_ACCESS_TOKEN, status_code=status_code)


class AggregatorConnectionError(AggregatorError):
    """Network failures: timeouts, DNS resolution, connection refused.

    Retriable by default.
    """

    @property
    def retriable(self) -> bool:
        return True


class AggregatorAPIError(AggregatorError):
    """HTTP 4xx/5xx responses from the aggregator API."""

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class AggregatorDataError(AggregatorError):
    """Malformed or unparseable response from the aggregator."""

    pass
