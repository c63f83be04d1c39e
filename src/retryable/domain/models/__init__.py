"""Domain models."""

from retryable.domain.models.decision import RetryDecision
from retryable.domain.models.request import Attempt, BodyFactory, RequestEnvelope

__all__ = [
    "Attempt",
    "BodyFactory",
    "RequestEnvelope",
    "RetryDecision",
]
