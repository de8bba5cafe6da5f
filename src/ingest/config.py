"""Configuration models for the HTTP fetch layer."""

import random
from typing import Annotated

from pydantic import Field

from src.data_model import StrictBaseModel


# 10 MB
DEFAULT_MAX_RESPONSE_SIZE_BYTES = 10 * 1024 * 1024


class RetryPolicy(StrictBaseModel):
    """Configuration for retry behavior.

    Uses exponential backoff: delay = base_delay_ms * (exponential_base ^ attempt)
    """

    max_retries: Annotated[int, Field(ge=0, le=10)] = 2
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 500
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 10000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay_ms)
        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)


class FetchConfig(StrictBaseModel):
    """Configuration for feed and article downloads."""

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = "hemeroteca/0.1"
    timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = 30.0
    max_response_size_bytes: Annotated[int, Field(ge=1024, le=100 * 1024 * 1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
