"""FastAPI dependency injection for pipeline components.

Routes never touch ``app.state`` directly; tests swap any of these
through ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Request

from stagewire.api.app_state import AppState
from stagewire.broadcast.registry import BroadcastRegistry
from stagewire.config import Settings
from stagewire.pipeline.orchestrator import SubmissionPipeline
from stagewire.repositories.protocols import SubmissionRepository


def get_app_state(request: Request) -> AppState:
    """Get the typed AppState built during lifespan startup."""
    return request.app.state.typed  # type: ignore[no-any-return]


def get_settings(request: Request) -> Settings:
    return get_app_state(request).settings


def get_registry(request: Request) -> BroadcastRegistry:
    return get_app_state(request).registry


def get_pipeline(request: Request) -> SubmissionPipeline:
    return get_app_state(request).pipeline


def get_submission_repo(request: Request) -> SubmissionRepository:
    return get_app_state(request).repository
