"""Configuration models with Pydantic validation."""

from retryable.domain.config.app import AppConfig
from retryable.domain.config.policy import ClientPolicy, parse_duration

__all__ = [
    "AppConfig",
    "ClientPolicy",
    "parse_duration",
]
