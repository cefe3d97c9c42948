"""Base model configuration for all Pydantic models."""

from pydantic import BaseModel, ConfigDict


class CacheBaseModel(BaseModel):
    """Base model with common configuration.

    Conventions:
    - Field names are lowercase snake_case
    - Enums are stored by value
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )
