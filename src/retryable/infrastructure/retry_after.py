"""Retry-After header parsing.

The header carries either a non-negative number of seconds or an HTTP-date
(RFC 1123), e.g. ``Retry-After: 120`` or
``Retry-After: Wed, 21 Oct 2015 07:28:00 GMT``.
"""

import email.utils
import re
from datetime import datetime, timezone
from typing import Mapping, Optional

import requests

RETRY_AFTER_HEADER = "Retry-After"

_SECONDS_RE = re.compile(r"^[0-9]+$")


def parse_retry_after_value(value: Optional[str]) -> Optional[float]:
    """Convert a Retry-After header value into a delay in seconds.

    Returns:
        Delay in seconds (negative or zero when the date has passed), or None
        if the value is absent or not understood
    """
    if not value:
        return None
    candidate = value.strip()
    if not candidate:
        return None

    if _SECONDS_RE.match(candidate):
        try:
            return float(int(candidate))
        except (OverflowError, ValueError):
            # too large for a float, or beyond the int digit limit
            return None

    try:
        retry_time = email.utils.parsedate_to_datetime(candidate)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_time is None:
        return None
    if retry_time.tzinfo is None:
        retry_time = retry_time.replace(tzinfo=timezone.utc)
    return (retry_time - datetime.now(timezone.utc)).total_seconds()


def parse_retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    """Extract the server-directed delay from response headers."""
    if headers is None:
        return None
    return parse_retry_after_value(headers.get(RETRY_AFTER_HEADER))


def retry_after_from_response(response: Optional[requests.Response]) -> Optional[float]:
    """Extract the server-directed delay from a response, if any."""
    if response is None:
        return None
    return parse_retry_after(getattr(response, "headers", None))
