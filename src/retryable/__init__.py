"""Retryable HTTP client with request delay, random jitter and exponential backoff."""

from retryable.domain.config import ClientPolicy
from retryable.domain.status import DEFAULT_RETRY_STATUS
from retryable.errors import (
    Cancelled,
    ClientError,
    ContextError,
    DeadlineExceeded,
    NonRetryableError,
    RetryableError,
)
from retryable.infrastructure.context import RequestContext
from retryable.infrastructure.http_client import RetryableClient, new_client

__all__ = [
    "Cancelled",
    "ClientError",
    "ClientPolicy",
    "ContextError",
    "DEFAULT_RETRY_STATUS",
    "DeadlineExceeded",
    "NonRetryableError",
    "RequestContext",
    "RetryableClient",
    "RetryableError",
    "new_client",
]
