"""Singleton logging configuration — two-phase initialization.

Phase 1: setup_logging() — call BEFORE fastmcp is imported.
  Sets FASTMCP_LOG_LEVEL env var and configures root logger.

Phase 2: cleanup_third_party_handlers() — call AFTER all imports.
  Clears the rich handlers fastmcp attaches at import time.

Both phases are idempotent (guarded by module-level flags).
"""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "httpx",
    "httpcore",
    "mcp.client.streamable_http",
    "sse_starlette.sse",
)

# fastmcp has used both names across 2.x releases
_FASTMCP_LOGGERS = ("FastMCP", "fastmcp")

_phase1_done = False
_phase2_done = False


def setup_logging(level: str = "INFO") -> None:
    """Phase 1: Configure root logger and set env vars.

    Must be called BEFORE any stagewire imports that transitively
    pull in fastmcp. Idempotent — second call is a no-op.
    """
    global _phase1_done  # noqa: PLW0603
    if _phase1_done:
        return
    _phase1_done = True

    # fastmcp's settings read FASTMCP_LOG_LEVEL at import time.
    os.environ.setdefault("FASTMCP_LOG_LEVEL", "WARNING")

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def cleanup_third_party_handlers() -> None:
    """Phase 2: Remove fastmcp's own handlers.

    fastmcp configures a rich console handler on its logger when
    imported, so every record is printed twice (its handler + root
    propagation). Clearing the handlers leaves root as the only sink.

    Idempotent — second call is a no-op.
    """
    global _phase2_done  # noqa: PLW0603
    if _phase2_done:
        return
    _phase2_done = True

    for name in _FASTMCP_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True
