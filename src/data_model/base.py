"""Shared Pydantic base model for configuration and value objects."""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Frozen model that rejects unknown fields.

    Used by pipeline errors, fetch configuration and scoring policies, all
    of which are shared read-only across worker threads.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
