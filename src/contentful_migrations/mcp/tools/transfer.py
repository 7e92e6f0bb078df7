"""MCP tool handlers for content transfers between environments.

Defines two tools:

- ``content_transfer`` -- transfer new and changed content from one
  environment into another (with optional dry-run).
- ``migration_status`` -- show the applied migration version of
  environments and whether they match.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...config_loader import load_hierarchical_config
from ...config_schema import UnifiedConfig, build_config
from ...core.async_utils import gather_limited, run_sync_limited
from ...core.client import ManagementClient
from ...transfer.engine import TransferEngine
from ...transfer.errors import CommitError
from ...transfer.importer import ManagementImporter
from ...transfer.models import ConflictPolicy
from ...transfer.reporter import (
    format_plan_tree,
    format_transfer_report,
    report_to_json,
)
from ...transfer.resolver import PresetDecisions
from .errors import build_error_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


CONTENT_TRANSFER_TOOL = types.Tool(
    name="content_transfer",
    description=(
        "Transfer new and changed entries and assets from a source "
        "environment into a destination environment. Both environments "
        "must be at the same migration version. With a content_type, only "
        "entries of that type plus the changed entries they link to are "
        "transferred. Conflicts (records changed on both sides) are "
        "skipped, overwritten, or decided per id with policy='manual'."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "source": {
                "type": "string",
                "description": "Source environment id (default from config)",
            },
            "destination": {
                "type": "string",
                "description": "Destination environment id (default from config)",
            },
            "content_type": {
                "type": "string",
                "description": "Only transfer entries of this content type",
            },
            "policy": {
                "type": "string",
                "enum": [p.value for p in ConflictPolicy],
                "description": (
                    "Conflict policy: skip keeps the destination, force "
                    "overwrites it, manual uses 'decisions'"
                ),
            },
            "decisions": {
                "type": "object",
                "additionalProperties": {"type": "boolean"},
                "description": (
                    "For policy='manual': {record_id: true} to overwrite, "
                    "false (or absent) to keep the destination"
                ),
            },
            "dry_run": {
                "type": "boolean",
                "default": False,
                "description": "Compute the plan and conflicts without writing",
            },
        },
        "required": [],
    },
)

MIGRATION_STATUS_TOOL = types.Tool(
    name="migration_status",
    description=(
        "Show the latest applied migration version of one or more "
        "environments and whether they are in the same state."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "environments": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "Environment ids (default: the configured source and "
                    "destination)"
                ),
            },
        },
        "required": [],
    },
)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _load_unified_config() -> UnifiedConfig:
    """Load the unified config from the hierarchical config system."""
    return build_config(load_hierarchical_config())


async def _handle_content_transfer(
    client: ManagementClient, args: dict[str, Any]
) -> types.CallToolResult:
    defaults = _load_unified_config().transfer

    source = args.get("source") or defaults.source_environment
    destination = args.get("destination") or defaults.destination_environment
    if not source or not destination:
        raise ValueError(
            "source and destination are required (or set "
            "transfer.source_environment / transfer.destination_environment "
            "in config.yml)"
        )
    if source == destination:
        raise ValueError("source and destination must be different environments")

    policy = ConflictPolicy(args.get("policy") or defaults.policy)
    decisions = args.get("decisions") or {}
    if decisions and policy != ConflictPolicy.MANUAL:
        raise ValueError("decisions are only used with policy='manual'")

    dry_run = bool(args.get("dry_run", False))
    engine = TransferEngine(
        client=client,
        committer=ManagementImporter(client),
        source=source,
        destination=destination,
        content_type=args.get("content_type") or defaults.content_type,
        policy=policy,
        prompter=PresetDecisions(decisions)
        if policy == ConflictPolicy.MANUAL
        else None,
        page_size=client.config.page_size,
    )

    try:
        report = await engine.arun(dry_run=dry_run)
    except CommitError as exc:
        partial = engine.last_report
        detail = format_transfer_report(partial) if partial else str(exc)
        return build_error_response(
            "commit_error",
            detail,
            "Records written before the failure were kept. Fix the listed "
            "records and re-run; unchanged records are skipped.",
        )

    text = format_transfer_report(report)
    if dry_run and not report.plan.is_empty:
        text += "\n\nPlan:\n" + format_plan_tree(report.plan, engine.content_types)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=report_to_json(report),
    )


async def _handle_migration_status(
    client: ManagementClient, args: dict[str, Any]
) -> types.CallToolResult:
    environments = list(args.get("environments") or [])
    if not environments:
        defaults = _load_unified_config().transfer
        environments = [
            env
            for env in (
                defaults.source_environment,
                defaults.destination_environment,
            )
            if env
        ]
    if not environments:
        raise ValueError("environments is required")

    versions = await gather_limited(
        [
            run_sync_limited(client.get_migration_version, env)
            for env in environments
        ]
    )
    in_sync = len(set(versions)) <= 1

    lines = ["Migration status"]
    for env, version in zip(environments, versions):
        shown = version if version is not None else "none"
        lines.append(f"  {env}: {shown}")
    lines.append("  In sync: " + ("yes" if in_sync else "no"))

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "versions": dict(zip(environments, versions)),
            "in_sync": in_sync,
        },
    )


TRANSFER_SPECS: list[ToolSpec] = [
    ToolSpec(tool=CONTENT_TRANSFER_TOOL, handler=_handle_content_transfer),
    ToolSpec(tool=MIGRATION_STATUS_TOOL, handler=_handle_migration_status),
]
