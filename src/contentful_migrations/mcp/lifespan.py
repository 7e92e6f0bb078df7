"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..core.async_utils import init_semaphore, run_sync
from ..core.client import ManagementClient

logger = logging.getLogger(__name__)

_REQUIRED_HINT = "Ensure CONTENTFUL_SPACE_ID and CONTENTFUL_MANAGEMENT_TOKEN are set."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create the ManagementClient and check it can list environments
    - Fail fast if the space is unreachable

    Args:
        config_overrides: Optional dict with config values from CLI
            (space_id, access_token, host, storage, insecure)

    Yields:
        Dict with 'client' key containing the initialized ManagementClient

    Raises:
        RuntimeError: If configuration is invalid or the API is unreachable.
    """
    logger.info("MCP server starting...")
    _stderr_print("Contentful Migrations MCP Server starting...")

    try:
        # .env first so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            unified = build_config(load_hierarchical_config())
            yaml_fallbacks = {
                k: v
                for k, v in unified.contentful.model_dump().items()
                if v is not None
            }
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            space_id=overrides.get("space_id"),
            access_token=overrides.get("access_token"),
            host=overrides.get("host"),
            storage=overrides.get("storage"),
            insecure=overrides.get("insecure", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Space: %s on %s", config.space_id, config.host)
        _stderr_print(f"  Space: {config.space_id} ({config.host})")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(f"  {_REQUIRED_HINT}")
        raise RuntimeError(f"Configuration error: {e}. {_REQUIRED_HINT}") from e

    logger.info("Validating Management API access...")
    _stderr_print("  Validating Management API access...")
    try:
        client = ManagementClient(config)
        environments = await run_sync(client.list_environments)
        logger.info("Space has environments: %s", ", ".join(environments))
        _stderr_print(f"  Environments: {', '.join(environments)}")
        init_semaphore(config.max_parallel_requests)
        _stderr_print(f"  Parallel requests: {config.max_parallel_requests}")
        _stderr_print("Server ready. Waiting for MCP client connection...")
    except Exception as e:
        logger.error("Failed to reach the Management API: %s", e)
        _stderr_print("ERROR: Management API connection failed.")
        _stderr_print(f"  {e}")
        raise RuntimeError(
            f"Management API connection failed: {e}. {_REQUIRED_HINT}"
        ) from e

    yield {"client": client}

    logger.info("MCP server shutting down")
    _stderr_print("Contentful Migrations MCP Server shutting down.")
