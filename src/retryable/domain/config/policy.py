"""Client retry policy model."""

import re
from typing import Any, FrozenSet

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retryable.domain.status import DEFAULT_RETRY_STATUS

GIB = 1024 * 1024 * 1024

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|us|s|m|h)")
_DURATION_UNITS = {
    "us": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> Any:
    """Convert a duration string such as ``"500ms"`` or ``"1h30m"`` into seconds.

    Numbers are returned unchanged (already seconds). Anything else is passed
    through so that pydantic reports the validation error.
    """
    if not isinstance(value, str):
        return value

    text = value.strip().lower()
    if not text:
        return value
    try:
        return float(text)
    except ValueError:
        pass

    position = 0
    seconds = 0.0
    for match in _DURATION_RE.finditer(text):
        if match.start() != position:
            return value
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        return value
    return seconds


class ClientPolicy(BaseModel):
    """Retry policy of a retryable HTTP client.

    Durations are expressed in seconds. A zero timeout or size disables the
    corresponding ceiling.

    Attributes:
        retry_status: Status codes that are retried
        retry_count: Maximum number of retries per request (attempts = count + 1)
        retry_delay: Base delay between retries
        retry_multiplier: Exponential backoff multiplier (values below 1.0 act as 1.0)
        retry_jitter: Random jitter factor applied to the retry delay (0.0-1.0)
        retry_timeout: Maximum total duration of a request including retries
        request_delay: Fixed delay applied before every attempt
        request_jitter: Random jitter factor applied to the request delay (0.0-1.0)
        request_timeout: Maximum duration of a single attempt
        request_size: Maximum request body size in bytes
        response_size: Maximum response body size in bytes
    """

    retry_status: FrozenSet[int] = Field(default=DEFAULT_RETRY_STATUS)
    retry_count: int = Field(20, ge=0)
    retry_delay: float = Field(0.5, ge=0.0)
    retry_multiplier: float = Field(1.5, ge=0.0)
    retry_jitter: float = Field(0.5, ge=0.0, le=1.0)
    retry_timeout: float = Field(3600.0, ge=0.0)
    request_delay: float = Field(0.01, ge=0.0)
    request_jitter: float = Field(0.5, ge=0.0, le=1.0)
    request_timeout: float = Field(300.0, ge=0.0)
    request_size: int = Field(2 * GIB, ge=0)
    response_size: int = Field(2 * GIB, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator(
        "retry_delay",
        "retry_timeout",
        "request_delay",
        "request_timeout",
        mode="before",
    )
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        return parse_duration(value)

    @property
    def effective_multiplier(self) -> float:
        """Backoff multiplier clamped so that delays never shrink."""
        return max(self.retry_multiplier, 1.0)
