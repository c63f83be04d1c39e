"""Outcome classification of a single attempt."""

from enum import Enum


class RetryDecision(str, Enum):
    """How the orchestrator proceeds after an attempt."""

    SUCCESS = "success"
    FATAL = "fatal"
    RETRYABLE = "retryable"
