"""Base model shared by configuration and API data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model."""

    model_config = ConfigDict(frozen=True)
