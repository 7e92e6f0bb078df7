"""Management API access shared between the transfer engine and the MCP server."""

from .async_utils import run_sync
from .client import ManagementClient

__all__ = ["ManagementClient", "run_sync"]
