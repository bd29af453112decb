"""In-memory fake remote clients for testing.

No network, no MCP session — canned results or canned failures.
"""

from __future__ import annotations

from typing import Any

from stagewire.remote.services import ToolService


class FakeToolClient:
    """Returns *result* (or raises *error*) and records every call."""

    def __init__(
        self,
        result: Any = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def invoke(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> Any:
        self.calls.append((tool_name, arguments))
        if self.error is not None:
            raise self.error
        return self.result


class FakeClientFactory:
    """Hands out pre-built fake clients keyed by service name."""

    def __init__(self, clients: dict[str, FakeToolClient]) -> None:
        self.clients = clients
        self.created: list[str] = []

    def create(self, service: ToolService) -> FakeToolClient:
        self.created.append(service.name)
        return self.clients[service.name]
