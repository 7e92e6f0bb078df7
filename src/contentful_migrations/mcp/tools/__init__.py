"""MCP tool handlers for content migrations.

This package wraps the transfer engine and the ManagementClient with
async handlers and structured error responses.
"""

from .errors import build_error_response
from .registry import ToolRegistry, ToolSpec
from .transfer import TRANSFER_SPECS

ALL_SPECS: list[ToolSpec] = list(TRANSFER_SPECS)

__all__ = [
    "build_error_response",
    "ToolSpec",
    "ToolRegistry",
    "ALL_SPECS",
    "TRANSFER_SPECS",
]
