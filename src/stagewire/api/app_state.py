"""Typed application state and its construction."""

from __future__ import annotations

from dataclasses import dataclass

from stagewire.broadcast.registry import BroadcastRegistry
from stagewire.config import Settings
from stagewire.logger import PipelineLogger
from stagewire.pipeline.orchestrator import SubmissionPipeline
from stagewire.remote.account import AccountContext
from stagewire.remote.client import ClientFactory, McpClientFactory
from stagewire.remote.invoke import RetryPolicy
from stagewire.remote.services import filestore_service, image_service
from stagewire.reporter import StageReporter
from stagewire.repositories.memory import InMemorySubmissionRepository
from stagewire.repositories.protocols import SubmissionRepository


@dataclass
class AppState:
    """Typed container for everything routes resolve via Depends."""

    settings: Settings
    registry: BroadcastRegistry
    reporter: StageReporter
    repository: SubmissionRepository
    pipeline: SubmissionPipeline
    pipeline_logger: PipelineLogger | None = None


def build_app_state(
    settings: Settings,
    client_factory: ClientFactory | None = None,
    pipeline_logger: PipelineLogger | None = None,
) -> AppState:
    """Wire registry, reporter, store and pipeline together.

    Without an explicit *client_factory* the MCP factory is built from
    ``ATXP_CONNECTION_STRING``; a missing or malformed value raises
    ``AccountConfigError`` here, at startup, never per request.
    """
    if client_factory is None:
        account = AccountContext.from_connection_string(
            settings.atxp_connection_string
        )
        client_factory = McpClientFactory(account)

    registry = BroadcastRegistry()
    reporter = StageReporter(registry, pipeline_logger=pipeline_logger)
    repository = InMemorySubmissionRepository()
    pipeline = SubmissionPipeline(
        primary=image_service(settings),
        dependent=filestore_service(settings),
        client_factory=client_factory,
        reporter=reporter,
        repository=repository,
        timeout=settings.remote_call_timeout_seconds,
        retry=RetryPolicy.from_settings(settings),
        pipeline_logger=pipeline_logger,
    )
    return AppState(
        settings=settings,
        registry=registry,
        reporter=reporter,
        repository=repository,
        pipeline=pipeline,
        pipeline_logger=pipeline_logger,
    )
