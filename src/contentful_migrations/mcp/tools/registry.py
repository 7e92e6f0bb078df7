"""ToolSpec and ToolRegistry for MCP tool dispatch.

- ToolSpec: Immutable dataclass linking a Tool definition and an async
  handler with standardized signature (client, args) -> CallToolResult.
- ToolRegistry: Optionally restricted to read-only tools at construction
  time, then provides list_tools() and call_tool() dispatch with error
  translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types
import requests

from ...core.client import ManagementClient
from ...transfer.errors import TransferError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (client, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Callable[[ManagementClient, dict], Awaitable[types.CallToolResult]]

    @property
    def read_only(self) -> bool:
        annotations = self.tool.annotations
        return bool(annotations and annotations.readOnlyHint)


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` only tools annotated ``readOnlyHint`` are
    registered, so nothing exposed can write to an environment.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if not read_only or spec.read_only:
                self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        client: ManagementClient,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Transfer failures, HTTP errors, validation errors and unexpected
        exceptions are turned into structured CallToolResult responses
        with corrective actions.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import (
            build_error_response,
            translate_http_error,
            translate_transfer_error,
        )

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(client, args)
        except TransferError as e:
            logger.warning("Transfer failed in %s: %s", name, e)
            return translate_transfer_error(e)
        except requests.HTTPError as e:
            logger.warning("Management API error in %s: %s", name, e)
            return translate_http_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check Management API connectivity or retry later.",
            )
