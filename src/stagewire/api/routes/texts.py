"""Submission routes — list and submit-and-process."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from stagewire.api.dependencies import get_pipeline, get_submission_repo
from stagewire.api.schemas import (
    ErrorResponse,
    SubmissionCreate,
    SubmissionList,
)
from stagewire.pipeline.orchestrator import (
    PrimaryStageError,
    SubmissionPipeline,
    SubmissionValidationError,
)
from stagewire.repositories.protocols import SubmissionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["texts"])

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_SUBMISSION_SCHEMA = SubmissionCreate.model_json_schema()


async def submitted_text(request: Request) -> Any:
    """Pull ``text`` from a JSON or form body.

    Anything unreadable yields None so the pipeline rejects it with the
    same 400 as blank input, instead of FastAPI's 422.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        return form.get("text")

    raw = await request.body()
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("text")


@router.get("/texts")
async def list_texts(
    repository: SubmissionRepository = Depends(get_submission_repo),
) -> SubmissionList:
    """List every finalized submission, oldest first."""
    submissions = await repository.list_all()
    return SubmissionList(texts=[s.to_dict() for s in submissions])


@router.post(
    "/texts",
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": _SUBMISSION_SCHEMA},
                "application/x-www-form-urlencoded": {
                    "schema": _SUBMISSION_SCHEMA
                },
            },
        },
    },
)
async def create_text(
    text: Any = Depends(submitted_text),
    pipeline: SubmissionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Run the tool pipeline for *text* and return the record.

    Progress is pushed to /api/progress observers while this runs.
    """
    try:
        result = await pipeline.run(text)
    except SubmissionValidationError as exc:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=str(exc)).model_dump(
                exclude_none=True
            ),
        )
    except PrimaryStageError as exc:
        return JSONResponse(status_code=500, content=exc.to_payload())

    if result.degraded:
        logger.info(
            "event=submission_degraded request_id=%s",
            result.request_id,
        )
    return JSONResponse(
        status_code=result.status_code,
        content=result.submission.to_dict(),
    )
