"""Network subsystem: content classification, header folding, retries, and execution.

Modules:
- policy: HTTP policy constants (timeouts, backoff bounds, redirects)
- content: Content-Type text classification
- headers: multi-value header folding
- retry: Tenacity-based retry policy for transport failures
- client: per-execution HTTPX client factory
- executor: deadline-bound GET execution with error classification

Example:
    >>> from HttpProvider.DataSource.network.executor import RequestExecutor, RequestSpec
    >>> result = RequestExecutor().execute(RequestSpec(url="https://example.com/version"))
    >>> result.status_code
    200
"""

from HttpProvider.DataSource.network.content import is_text_content_type, parse_media_type
from HttpProvider.DataSource.network.headers import (
    HEADER_SEPARATOR,
    canonical_header_name,
    fold_headers,
    fold_response_headers,
)
from HttpProvider.DataSource.network.retry import (
    RetriesExhausted,
    RetryPolicy,
    RetryState,
    TransportAttemptError,
    is_retryable_transport_error,
)

__all__ = [
    # Content classification
    "is_text_content_type",
    "parse_media_type",
    # Header folding
    "HEADER_SEPARATOR",
    "canonical_header_name",
    "fold_headers",
    "fold_response_headers",
    # Retry policy
    "RetryPolicy",
    "RetryState",
    "TransportAttemptError",
    "RetriesExhausted",
    "is_retryable_transport_error",
]
