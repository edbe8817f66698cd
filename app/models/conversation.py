"""API response models."""

from datetime import datetime

from pydantic import BaseModel


class TokenCountResponse(BaseModel):
    """Response model for the token count endpoint."""

    input: int
    output: int


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
