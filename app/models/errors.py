"""Error envelope models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Body of the error envelope."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    type: Literal["error"] = "error"
    status: int | None = None
    status_text: str | None = Field(default=None, alias="statusText")


class ErrorEnvelope(BaseModel):
    """Uniform JSON error body returned to callers."""

    error: ErrorDetail

    def to_content(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
