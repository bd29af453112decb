"""Remote tool clients over MCP (fastmcp)."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from fastmcp import Client
from fastmcp.client.transports import StreamableHttpTransport

from stagewire.remote.account import AccountContext
from stagewire.remote.services import ToolService

logger = logging.getLogger(__name__)


class RemoteToolClient(Protocol):
    """Invokes tools on one remote service."""

    async def invoke(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> Any: ...


class ClientFactory(Protocol):
    """Builds a client per service. Must not perform remote I/O."""

    def create(self, service: ToolService) -> RemoteToolClient: ...


class McpToolClient:
    """fastmcp client bound to one MCP endpoint.

    Construction only prepares the transport; the session is opened
    per ``invoke`` and closed when the call returns. A tool result
    flagged ``isError`` surfaces as ``fastmcp.exceptions.ToolError``.
    """

    def __init__(self, service: ToolService, account: AccountContext) -> None:
        self._service = service
        self._client = Client(
            StreamableHttpTransport(
                service.mcp_server,
                auth=account.auth_token,
            )
        )

    @property
    def service(self) -> ToolService:
        return self._service

    async def invoke(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> Any:
        logger.debug(
            "event=tool_call service=%s tool=%s",
            self._service.name,
            tool_name,
        )
        async with self._client:
            return await self._client.call_tool(tool_name, arguments)


class McpClientFactory:
    """Creates ``McpToolClient`` instances sharing one account."""

    def __init__(self, account: AccountContext) -> None:
        self._account = account

    def create(self, service: ToolService) -> McpToolClient:
        return McpToolClient(service, self._account)
