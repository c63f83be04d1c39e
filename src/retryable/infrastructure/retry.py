"""Retry loop configuration using tenacity.

The loop retries :class:`RetryableError` only. Between attempts it waits for
the server-directed Retry-After delay when one is present, and otherwise for
an exponentially growing delay with random jitter.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from retryable.domain.config import ClientPolicy
from retryable.errors import RetryableError
from retryable.infrastructure.delay import jitter_duration
from retryable.infrastructure.retry_after import retry_after_from_response

logger = logging.getLogger(__name__)


class wait_jitter(wait_base):
    """Scale another wait strategy by a random factor of ``1 +/- jitter``."""

    def __init__(self, wait: wait_base, jitter: float) -> None:
        self.wait = wait
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        return jitter_duration(float(self.wait(retry_state)), self.jitter)


class wait_retry_after_or_backoff(wait_base):
    """Wait strategy that honours Retry-After before falling back to backoff.

    A positive Retry-After delay is used exactly, without jitter.
    """

    def __init__(self, fallback_wait: wait_base) -> None:
        self.fallback_wait = fallback_wait

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._retry_after_delay(retry_state)
        if delay is not None and delay > 0:
            return delay
        return float(self.fallback_wait(retry_state))

    @staticmethod
    def _retry_after_delay(retry_state: RetryCallState) -> Optional[float]:
        outcome = retry_state.outcome
        if outcome is None:
            return None
        exc = outcome.exception()
        if exc is None:
            return None
        return retry_after_from_response(getattr(exc, "response", None))


def create_backoff_wait(policy: ClientPolicy) -> wait_base:
    """Build the post-failure wait: ``retry_delay * multiplier ** attempt``, jittered."""
    backoff = wait_exponential(
        multiplier=policy.retry_delay,
        exp_base=policy.effective_multiplier,
    )
    if policy.retry_jitter > 0:
        backoff = wait_jitter(backoff, policy.retry_jitter)
    return wait_retry_after_or_backoff(backoff)


def create_retrying(
    policy: ClientPolicy,
    sleep: Callable[[float], None],
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> Retrying:
    """Create the tenacity retry loop for one request.

    Args:
        policy: Client retry policy
        sleep: Sleep function used between attempts (must honour cancellation)
        before_sleep: Optional callback before sleep (defaults to logging)

    Returns:
        Retrying object to iterate over (``for attempt in retrying: with attempt: ...``)
    """
    total_attempts = policy.retry_count + 1

    def _before_sleep_log(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None:
            return
        exception = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        upcoming = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Request failed (attempt {attempt}/{total_attempts}): {exception}. "
            f"Retrying in {upcoming:.3f}s..."
        )

    if before_sleep is None:
        before_sleep = _before_sleep_log

    return Retrying(
        stop=stop_after_attempt(total_attempts),
        wait=create_backoff_wait(policy),
        retry=retry_if_exception_type(RetryableError),
        sleep=sleep,
        reraise=True,
        before_sleep=before_sleep,
    )
