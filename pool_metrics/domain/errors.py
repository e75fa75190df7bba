"""Domain errors."""

RATE_LIMITED = "rate_limited"
CREDENTIALS_REQUIRED = "credentials_required"
UPSTREAM_UNAVAILABLE = "upstream_unavailable"
NO_USABLE_DATA = "no_usable_data"

_RETRYABLE_CODES = (RATE_LIMITED, UPSTREAM_UNAVAILABLE, NO_USABLE_DATA)


class DomainError(Exception):
    """Base domain error."""

    code = "internal_error"

    def as_metric_error(self) -> str:
        """Render as the error string stored on a metric."""
        return f"{self.code}: {self}"


class PoolNotFoundError(DomainError):
    """Pool not found in the registry."""

    code = "pool_not_found"


class CollectorNotFoundError(DomainError):
    """No collector registered for a platform."""

    code = "collector_missing"


class UnsupportedChainError(DomainError):
    """Chain has no explorer or RPC endpoint configured."""

    code = "unsupported_chain"


class CredentialsRequiredError(DomainError):
    """Upstream requires an API key that is not configured."""

    code = CREDENTIALS_REQUIRED


class RateLimitedError(DomainError):
    """Upstream rejected the call because of rate limiting."""

    code = RATE_LIMITED


class UpstreamUnavailableError(DomainError):
    """Upstream could not be reached or answered with a failure status."""

    code = UPSTREAM_UNAVAILABLE


class NoUsableDataError(DomainError):
    """Upstream answered but the expected field is missing."""

    code = NO_USABLE_DATA


class SnapshotBuildError(DomainError):
    """Rebuilding a cache snapshot failed."""

    code = "snapshot_build_failed"


def is_retryable_error(message: str | None) -> bool:
    """Whether a stored metric error is expected to heal on the next scheduled pass."""
    if not message:
        return False
    return message.startswith(_RETRYABLE_CODES)
