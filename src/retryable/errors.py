"""Error hierarchy of the retryable HTTP client.

Every failure surfaced by :meth:`RetryableClient.do` is either a
:class:`RetryableError` (transient, retries were exhausted) or a
:class:`NonRetryableError` (permanent, raised on the first occurrence). The
underlying cause is kept as ``__cause__``.
"""

from typing import Optional

import requests


class ClientError(Exception):
    """Base class for errors raised by the retryable client.

    Attributes:
        response: Last response received, if any. Its body has been read into
            memory and can be read again.
    """

    def __init__(self, message: str, response: Optional[requests.Response] = None):
        super().__init__(message)
        self.response = response


class RetryableError(ClientError):
    """Transient failure; the request may succeed when retried."""


class NonRetryableError(ClientError):
    """Permanent failure; retrying the request is not useful."""


class ContextError(Exception):
    """A request context ended before an operation completed."""


class Cancelled(ContextError):
    """The request context was cancelled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceeded(ContextError):
    """The request context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)
