"""Generic remote tool call with per-endpoint circuit breaker and retry."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from fastmcp.exceptions import ToolError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
    wait_none,
)

from stagewire.config import Settings
from stagewire.constants import (
    CB_TOOL_FAILURE_THRESHOLD,
    CB_TOOL_RECOVERY_TIMEOUT,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from stagewire.remote.client import RemoteToolClient
from stagewire.remote.services import ToolResultError, ToolService
from stagewire.resilience.errors import is_retryable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry one remote call."""

    attempts: int = RETRY_MAX_ATTEMPTS
    initial_wait: float = RETRY_INITIAL_WAIT
    max_wait: float = RETRY_MAX_WAIT

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            attempts=settings.remote_retry_attempts,
            initial_wait=settings.remote_retry_initial_wait,
            max_wait=settings.remote_retry_max_wait,
        )


def _counts_as_failure(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Return True if the error should count against the breaker.

    The circuitbreaker library calls this with (thrown_type,
    thrown_value). A ToolError means the server answered and rejected
    the call, so the endpoint itself is healthy.
    """
    return not issubclass(thrown_type, ToolError)


# Per-endpoint circuit breaker registry: one MCP server's outage
# must not block calls to the other.
_breaker_registry: dict[str, CircuitBreaker] = {}  # pyright: ignore[reportUnknownVariableType]


def _get_breaker(endpoint: str) -> CircuitBreaker:  # pyright: ignore[reportUnknownParameterType]
    """Get or create a circuit breaker for the given endpoint."""
    if endpoint not in _breaker_registry:
        _breaker_registry[endpoint] = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=CB_TOOL_FAILURE_THRESHOLD,
            recovery_timeout=CB_TOOL_RECOVERY_TIMEOUT,
            expected_exception=_counts_as_failure,
            name=f"mcp_{endpoint}",
        )
    return _breaker_registry[endpoint]


def reset_breakers() -> None:
    """Forget all breaker state."""
    _breaker_registry.clear()


def _should_retry(error: BaseException) -> bool:
    if isinstance(error, (CircuitBreakerError, ToolResultError)):
        return False
    return is_retryable(error)


def _log_retry(state: RetryCallState) -> None:
    outcome = state.outcome
    error = outcome.exception() if outcome is not None else None
    logger.warning(
        "event=tool_call_retry attempt=%d error=%s",
        state.attempt_number,
        error,
    )


async def _call_once(
    client: RemoteToolClient,
    service: ToolService,
    arguments: dict[str, Any],
    timeout: float | None,
) -> Any:
    breaker = _get_breaker(service.mcp_server)
    if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
        raise CircuitBreakerError(breaker)  # pyright: ignore[reportUnknownArgumentType]
    with breaker:  # pyright: ignore[reportUnknownMemberType]
        call = client.invoke(service.tool_name, arguments)
        if timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=timeout)


async def invoke_remote_tool(
    client: RemoteToolClient,
    service: ToolService,
    tool_input: Any,
    *,
    timeout: float | None = None,
    retry: RetryPolicy | None = None,
) -> dict[str, str]:
    """Call *service*'s tool with *tool_input* and extract its fields.

    - Arguments come from ``service.build_arguments(tool_input)``.
    - Each attempt is bounded by *timeout* seconds when set.
    - Transient, server and timeout failures are retried with jittered
      exponential backoff; a zero ``max_wait`` retries immediately.
    - Each MCP endpoint has its own circuit breaker.
    - ``service.extract_result`` runs once, after the call succeeds.
    """
    policy = retry or RetryPolicy()
    arguments = service.build_arguments(tool_input)
    wait = (
        wait_none()
        if policy.max_wait == 0
        else wait_exponential_jitter(
            initial=policy.initial_wait, max=policy.max_wait
        )
    )
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait,
        retry=retry_if_exception(_should_retry),
        before_sleep=_log_retry,
        reraise=True,
    )
    raw = await retrying(_call_once, client, service, arguments, timeout)
    return service.extract_result(raw)
