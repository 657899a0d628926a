"""Error details domain model."""

from pydantic import BaseModel, ConfigDict


class ErrorDetails(BaseModel):
    """Machine-readable code and human-readable message for a failed request."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
