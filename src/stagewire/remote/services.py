"""Per-service configuration for the remote tools a pipeline calls.

A ``ToolService`` is a closed record: where the MCP server lives, which
tool to call, how to build its arguments, and how to pull the fields the
pipeline needs out of the raw result. The orchestrator only ever talks
to services through this record, so swapping the primary/dependent pair
is a configuration change.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from stagewire.config import Settings


class ToolResultError(ValueError):
    """A remote tool returned a payload the pipeline cannot use."""


@dataclass(frozen=True)
class ToolService:
    """Static description of one remote tool endpoint."""

    name: str
    mcp_server: str
    tool_name: str
    description: str
    build_arguments: Callable[[Any], dict[str, Any]]
    extract_result: Callable[[Any], dict[str, str]]
    fields: tuple[str, ...] = ()


def tool_payload(raw: Any) -> dict[str, Any]:
    """Normalize a raw tool result into a dict.

    Accepts a plain mapping, or an MCP call result: structured content
    wins, otherwise the first text block is parsed as JSON.
    """
    if isinstance(raw, Mapping):
        return dict(raw)

    structured = getattr(raw, "structured_content", None)
    if structured is None:
        structured = getattr(raw, "structuredContent", None)
    if isinstance(structured, Mapping) and structured:
        return dict(structured)

    for block in getattr(raw, "content", None) or []:
        text = getattr(block, "text", None)
        if text is None:
            continue
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ToolResultError(
                f"tool returned non-JSON text: {text[:80]!r}"
            ) from exc
        if not isinstance(parsed, dict):
            raise ToolResultError("tool returned non-object JSON")
        return parsed

    raise ToolResultError("tool returned no usable content")


def _require(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ToolResultError(f"tool result is missing {key!r}")
    return value


# ── Image (primary) ──────────────────────────────────────


def _image_arguments(prompt: str) -> dict[str, Any]:
    return {"prompt": prompt}


def _image_result(raw: Any) -> dict[str, str]:
    payload = tool_payload(raw)
    return {"imageUrl": _require(payload, "url")}


def image_service(settings: Settings) -> ToolService:
    """Primary service: create an image from the submitted text."""
    return ToolService(
        name="image",
        mcp_server=settings.primary_mcp_server,
        tool_name=settings.primary_tool_name,
        description="ATXP Image MCP server",
        build_arguments=_image_arguments,
        extract_result=_image_result,
        fields=("imageUrl",),
    )


# ── Filestore (dependent) ────────────────────────────────


def _filestore_arguments(
    primary: Mapping[str, str],
) -> dict[str, Any]:
    return {"sourceUrl": primary["imageUrl"], "makePublic": True}


def _filestore_result(raw: Any) -> dict[str, str]:
    payload = tool_payload(raw)
    return {
        "fileName": _require(payload, "filename"),
        "imageUrl": _require(payload, "url"),
    }


def filestore_service(settings: Settings) -> ToolService:
    """Dependent service: persist the primary artifact publicly."""
    return ToolService(
        name="filestore",
        mcp_server=settings.dependent_mcp_server,
        tool_name=settings.dependent_tool_name,
        description="ATXP Filestore MCP server",
        build_arguments=_filestore_arguments,
        extract_result=_filestore_result,
        fields=("imageUrl", "fileName"),
    )


def enrichment_defaults(*services: ToolService) -> dict[str, str]:
    """Every field any of *services* can populate, set to ""."""
    return {
        name: "" for service in services for name in service.fields
    }
