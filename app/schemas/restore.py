"""Pydantic schemas for image restoration requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, Field, HttpUrl


class RestoreRequest(BaseModel):
    """Image to transform."""

    image_url: HttpUrl = Field(
        ...,
        description="Publicly reachable URL of the source image.",
    )


class RestoreResponse(BaseModel):
    """Result references produced by a successful job."""

    job_id: str = Field(..., description="Runner job id, useful for support requests.")
    output: list[str] = Field(
        ...,
        description="Ordered result image URLs.",
    )
