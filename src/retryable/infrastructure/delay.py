"""Context-aware sleeps with random jitter."""

import logging
import random

from retryable.infrastructure.context import RequestContext

logger = logging.getLogger(__name__)


def jitter_duration(duration: float, jitter: float) -> float:
    """Apply random jitter to a duration: ``duration * (1 +/- jitter)``.

    Args:
        duration: Base duration in seconds
        jitter: Jitter fraction (0.0 disables jitter)

    Returns:
        Jittered duration, never negative
    """
    if duration <= 0:
        return 0.0
    if jitter <= 0:
        return duration
    return max(0.0, duration * (1.0 + random.uniform(-jitter, jitter)))


def sleep(context: RequestContext, seconds: float) -> None:
    """Sleep for ``seconds`` unless ``context`` ends first.

    Raises:
        ContextError: If the context is already done or ends during the sleep
    """
    if seconds > 0:
        logger.debug(f"Sleeping for {seconds:.3f}s")
    context.wait(seconds)


def sleep_with_jitter(context: RequestContext, duration: float, jitter: float) -> None:
    """Sleep for a jittered duration unless ``context`` ends first."""
    sleep(context, jitter_duration(duration, jitter))
