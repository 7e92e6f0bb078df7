"""MCP Server for content migrations using stdio transport.

Exposes content transfers between the environments of one space as MCP
tools.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..core.async_utils import run_sync
from ..core.client import ManagementClient
from ..logger import DEFAULT_LOG_FILE, setup_logging
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("contentful-migrations")

# Global client instance (initialized in lifespan)
_client: ManagementClient | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    client: ManagementClient, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test Management API connectivity."""
    try:
        environments = await run_sync(client.list_environments)
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=(
                        f"Connected to space {client.config.space_id}. "
                        f"Environments: {', '.join(environments)}"
                    ),
                )
            ]
        )
    except Exception as e:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=(
                        f"Management API connection failed: {e}. Check "
                        "CONTENTFUL_SPACE_ID and CONTENTFUL_MANAGEMENT_TOKEN."
                    ),
                )
            ],
            isError=True,
        )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test Management API connectivity and list environments",
        annotations=types.ToolAnnotations(readOnlyHint=True),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_client() -> ManagementClient:
    """Get the global ManagementClient instance.

    Raises:
        RuntimeError: If client is not initialized
    """
    if _client is None:
        raise RuntimeError(
            "ManagementClient not initialized. Server lifespan not started."
        )
    return _client


def set_client(client: ManagementClient | None) -> None:
    global _client
    _client = client


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List all registered tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    client = get_client()
    try:
        return await get_registry().call_tool(name, arguments, client)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), validates
    API access via the lifespan manager, and serves JSON-RPC on stdio.

    Args:
        config_overrides: Optional dict with config values to override
            (space_id, access_token, host, storage, insecure, log_file,
            read_only)
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(mode="mcp", log_file=overrides.get("log_file"))

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, read_only=overrides.get("read_only", False))
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    set_registry(registry)

    # set_client() is called here rather than in the lifespan so it always
    # targets this module, also when run as __main__.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_client(ctx["client"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="contentful-migrations",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_client(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Contentful Migrations MCP Server - content transfer between environments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .migrations/config.yml)
  contentful-migrations-mcp

  # Override the space
  contentful-migrations-mcp --space-id abc123

  # Read migration versions from content entries instead of a tag
  contentful-migrations-mcp --storage content

  # Only expose tools that never write
  contentful-migrations-mcp --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )

    parser.add_argument(
        "--space-id",
        help="Override space id (takes precedence over CONTENTFUL_SPACE_ID and config files)",
    )
    parser.add_argument(
        "--access-token",
        help="Override management token"
        " (visible in process list -- prefer CONTENTFUL_MANAGEMENT_TOKEN)",
    )
    parser.add_argument(
        "--host",
        help="Override Management API host (default: api.contentful.com)",
    )
    parser.add_argument(
        "--storage",
        choices=["tag", "content"],
        help="Where the applied migration version is stored",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Only register tools that never write to an environment",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a starter .migrations/config.yml if no config file exists, then exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"contentful-migrations version {__version__}",
    )

    args = parser.parse_args()

    if args.init_config:
        print(f"Config file: {ensure_config()}", file=sys.stderr)
        return

    config_overrides: dict = {}
    for key in ("space_id", "access_token", "host", "storage", "log_file"):
        value = getattr(args, key)
        if value:
            config_overrides[key] = value
    if args.insecure:
        config_overrides["insecure"] = True
    if args.read_only:
        config_overrides["read_only"] = True

    if config_overrides:
        override_keys = [k for k in config_overrides if k != "access_token"]
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
