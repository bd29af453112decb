"""Request/response schemas for the HTTP API."""

from typing import Any

from pydantic import BaseModel, Field


class SubmissionCreate(BaseModel):
    """Documented body for POST /api/texts (JSON or form-encoded).

    The route reads the body itself so that a missing, malformed or
    blank ``text`` is always rejected by the pipeline with a 400.
    """

    text: str | None = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str
    kind: str | None = None
    details: str | None = None


class SubmissionList(BaseModel):
    """Response body for GET /api/texts."""

    texts: list[dict[str, Any]] = Field(default_factory=list)
