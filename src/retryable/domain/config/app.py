"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from retryable.domain.config.policy import ClientPolicy


class AppConfig(BaseModel):
    """Main application configuration.

    Root model of ``.retryable.yml``. Validation is performed at load time to
    fail fast on configuration errors.

    Attributes:
        policy: Retry policy applied by clients created from this configuration
    """

    policy: ClientPolicy = Field(default_factory=ClientPolicy)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "policy": {
                    "retry_count": 5,
                    "retry_delay": "500ms",
                    "retry_multiplier": 1.5,
                    "retry_jitter": 0.5,
                    "retry_timeout": "10m",
                    "request_delay": "10ms",
                    "request_jitter": 0.5,
                    "request_timeout": "30s",
                    "retry_status": [429, 500, 502, 503, 504],
                },
            }
        },
    )
