"""Shared constants — single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON, SSE
payloads, log lines) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class StageStatus(StrEnum):
    """Status carried by every stage event.

    Observers switch on these exact strings; do not rename.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ERROR = "error"
    FINAL = "final"


class EnvelopeType(StrEnum):
    """Discriminator tag on every frame pushed to observers."""

    CONNECTED = "connected"
    STAGE_UPDATE = "stage-update"


class StageName(StrEnum):
    """Stage identifiers emitted by the submission pipeline.

    ``filestore-error`` is kept as-is: browser observers already key
    on it for the degraded path.
    """

    INITIALIZING = "initializing"
    CREATING_CLIENTS = "creating-clients"
    CALLING_PRIMARY_TOOL = "calling-primary-tool"
    PRIMARY_TOOL_ERROR = "primary-tool-error"
    CALLING_DEPENDENT_TOOL = "calling-dependent-tool"
    FILESTORE_ERROR = "filestore-error"
    COMPLETED = "completed"


class PipelineOutcome(StrEnum):
    """Terminal state of one pipeline run."""

    COMPLETED = "completed"
    COMPLETED_DEGRADED = "completed-degraded"
    FAILED = "failed"


# ── Messages ─────────────────────────────────────────────

CONNECTED_MESSAGE = "SSE connection established"
TEXT_REQUIRED_MESSAGE = "Text is required"
PRIMARY_FAILURE_MESSAGE = "Failed to call ATXP MCP tool"

# ── Observer channel ─────────────────────────────────────

OBSERVER_QUEUE_SIZE = 100
SSE_PING_SECONDS = 15
FINISHED_REQUESTS_TRACKED = 1000

# ── Remote tool resilience ───────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 1.0  # seconds
RETRY_MAX_WAIT = 8.0  # seconds
CB_TOOL_FAILURE_THRESHOLD = 5
CB_TOOL_RECOVERY_TIMEOUT = 30  # seconds

# ── Logging ──────────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
