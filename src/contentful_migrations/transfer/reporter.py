"""Transfer report formatting functions.

Provides human-readable and machine-readable output for transfers:

- ``format_transfer_report`` -- post-run summary.
- ``format_change_description`` -- one conflict for review.
- ``format_plan_tree`` -- the plan as an indented link tree.
- ``plan_to_json`` / ``report_to_json`` -- structured dicts for MCP
  tool output.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .diff import record_label
from .links import identity_of, index_by_id, linked_ids
from .models import TransferState
from .records import record_payload

if TYPE_CHECKING:
    from .models import (
        ChangeDescription,
        ContentTypeSchema,
        Record,
        TransferPlan,
        TransferReport,
    )


def format_timestamp(timestamp: Any) -> str:
    """Format an ISO 8601 timestamp as ``YYYY-MM-DD HH:MM``.

    Unparseable values are returned unchanged; ``None`` becomes
    ``"unknown"``.
    """
    if timestamp is None:
        return "unknown"
    if isinstance(timestamp, datetime):
        return timestamp.strftime("%Y-%m-%d %H:%M")
    try:
        parsed = datetime.fromisoformat(str(timestamp).replace("Z", "+00:00"))
    except ValueError:
        return str(timestamp)
    return parsed.strftime("%Y-%m-%d %H:%M")


# ------------------------------------------------------------------
# Conflicts
# ------------------------------------------------------------------


def format_change_description(description: ChangeDescription) -> str:
    """Format a single conflict with its changed fields and choices."""
    lines = [description.message, ""]
    for choice in description.choices:
        lines.append(f"  {choice.label}")
    return "\n".join(lines)


# ------------------------------------------------------------------
# Plan tree
# ------------------------------------------------------------------


def format_plan_tree(
    plan: TransferPlan,
    content_types: Iterable[ContentTypeSchema] | None = None,
) -> str:
    """Render the plan as a tree of records and the records they link.

    Roots are the records no other record of the plan links to.  A
    record already on the current branch is left out, and a record
    expanded elsewhere in the tree is listed without its links.
    """
    schemas = {schema.id: schema for schema in content_types or []}
    records = index_by_id([*plan.entries, *plan.assets])
    if not records:
        return ""

    names = {
        record_id: record_label(record, schemas.get(record.type_id or ""))
        for record_id, record in records.items()
    }
    links = {
        record_id: [t for t in linked_ids(record) if t in records]
        for record_id, record in records.items()
    }
    referenced = {target for targets in links.values() for target in targets}
    roots = [rid for rid in records if rid not in referenced]
    if not roots:
        roots = [next(iter(records))]

    lines: list[str] = []
    expanded: set[str] = set()

    def _walk(record_id: str, depth: int, branch: tuple[str, ...]) -> None:
        lines.append(f"{'  ' * depth}- {names[record_id]}")
        if record_id in expanded:
            return
        expanded.add(record_id)
        for target in links[record_id]:
            if target in branch:
                continue
            _walk(target, depth + 1, branch + (target,))

    for root in roots:
        _walk(root, 0, (root,))
    return "\n".join(lines)


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_transfer_report(report: TransferReport) -> str:
    """Format a complete transfer report as human-readable text."""
    lines: list[str] = []

    header = f"Transfer {report.source} -> {report.destination}"
    if report.content_type:
        header += f" (content type '{report.content_type}')"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Policy: {report.policy.value}")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    if report.nothing_to_do:
        lines.append("Nothing to transfer: destination is up to date.")
        return "\n".join(lines)

    lines.append(
        f"{len(report.plan.entries)} entries and "
        f"{len(report.plan.assets)} assets "
        + (
            "transferred"
            if report.state == TransferState.COMMITTED
            else "planned"
        )
    )
    lines.append("")

    if report.conflicts:
        lines.append("Conflicts:")
        for description in report.conflicts:
            action = (
                "overwrite"
                if report.decisions.get(description.record_id)
                else "skip"
            )
            lines.append(f"  {description.label} ({action})")
            for change in description.changes:
                lines.append(f"    {change.summary}")
        lines.append("")

    if report.state == TransferState.ABORTED:
        lines.append("Transfer aborted before commit.")
        lines.append("")

    if report.error:
        lines.append(f"Error: {report.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def _record_to_json(record: Record) -> dict:
    return {
        "id": identity_of(record),
        "kind": record.kind.value,
        "type_id": record.type_id,
        "updated_at": record.updated_at,
        **record_payload(record),
    }


def plan_to_json(plan: TransferPlan) -> dict:
    """Convert a plan to plain structured data."""
    return {
        "entries": [_record_to_json(r) for r in plan.entries],
        "assets": [_record_to_json(r) for r in plan.assets],
    }


def report_to_json(report: TransferReport) -> dict:
    """Convert a transfer report to a dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    return {
        "source": report.source,
        "destination": report.destination,
        "content_type": report.content_type,
        "policy": report.policy.value,
        "dry_run": report.dry_run,
        "state": report.state.value,
        "nothing_to_do": report.nothing_to_do,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "entries": len(report.plan.entries),
            "assets": len(report.plan.assets),
            "conflicts": len(report.conflicts),
            "overwritten": len(report.overwritten),
            "kept": len(report.kept),
        },
        "conflicts": [
            {
                "id": d.record_id,
                "label": d.label,
                "overwrite": bool(report.decisions.get(d.record_id)),
                "changes": [c.summary for c in d.changes],
            }
            for d in report.conflicts
        ],
        "plan": {
            "entries": [r.id for r in report.plan.entries],
            "assets": [r.id for r in report.plan.assets],
        },
        "error": report.error,
    }
