"""Pydantic models for the content transfer engine.

Defines the data contracts shared by all transfer modules:

- ``LinkKind`` / ``Link``: typed references between records.
- ``Record``: one entry or asset of an environment.
- ``FieldDefinition`` / ``ContentTypeSchema``: content model used to
  interpret record fields while diffing.
- ``RecordSet``: snapshot of one environment.
- ``FieldChange`` / ``Choice`` / ``ChangeDescription``: diff output.
- ``TransferPlan``: the entries and assets handed to the importer.
- ``ConflictPolicy`` / ``TransferState`` / ``TransferReport``: run
  configuration and outcome.

Field values are kept as plain structured data: scalars, ``dict``
payloads (rich text documents, locations), ``Link`` instances and lists
of those.  All models are frozen.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel

Scalar = Union[str, int, float, bool, None, dict]
FieldValue = Any  # Scalar | Link | list[FieldValue]


class LinkKind(str, Enum):
    """Kind of record a link points to."""

    ENTRY = "Entry"
    ASSET = "Asset"


class ConflictPolicy(str, Enum):
    """How conflicting records are resolved."""

    MANUAL = "manual"
    FORCE = "force"
    SKIP = "skip"


class TransferState(str, Enum):
    """Lifecycle of a single transfer run."""

    INIT = "init"
    VERIFIED = "verified"
    FETCHED = "fetched"
    RESOLVED = "resolved"
    PLANNED = "planned"
    COMMITTED = "committed"
    ABORTED = "aborted"


class Link(BaseModel):
    """Reference from a field value to another record."""

    target_id: str
    kind: LinkKind

    model_config = {"frozen": True}

    def token(self) -> str:
        """Comparable ``"id (kind)"`` form used when diffing arrays."""
        return f"{self.target_id} ({self.kind.value})"


class Record(BaseModel):
    """An entry or asset in one environment.

    Attributes:
        id: Record id, stable across environments.
        kind: ``Entry`` or ``Asset``.
        type_id: Content type id (``None`` for assets).
        created_at: ISO 8601 creation timestamp.
        updated_at: ISO 8601 last-update timestamp.
        environment: Id of the environment the record was read from.
        version: Platform version counter, used for optimistic writes.
        fields: ``{field_id: {locale: value}}``.
    """

    id: str
    kind: LinkKind = LinkKind.ENTRY
    type_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    environment: str | None = None
    version: int | None = None
    fields: dict[str, dict[str, FieldValue]] = {}

    model_config = {"frozen": True}


class FieldDefinition(BaseModel):
    """One field of a content type."""

    id: str
    name: str = ""
    type: str = ""
    link_type: str | None = None
    items: dict | None = None

    model_config = {"frozen": True}


class ContentTypeSchema(BaseModel):
    """Content model of one record type."""

    id: str
    name: str = ""
    display_field_id: str | None = None
    fields: list[FieldDefinition] = []

    model_config = {"frozen": True}

    def field(self, field_id: str) -> FieldDefinition | None:
        """Return the definition for *field_id*, or ``None``."""
        for definition in self.fields:
            if definition.id == field_id:
                return definition
        return None


class RecordSet(BaseModel):
    """Snapshot of one environment.

    Attributes:
        environment: Environment id the snapshot was taken from.
        content_types: All content type schemas.
        entries: All entries.
        assets: All assets.
        filtered_entries: Entries matching the requested type filter,
            or ``None`` when no filter was given.
    """

    environment: str
    content_types: list[ContentTypeSchema] = []
    entries: list[Record] = []
    assets: list[Record] = []
    filtered_entries: list[Record] | None = None

    model_config = {"frozen": True}

    def schema_for(self, type_id: str | None) -> ContentTypeSchema | None:
        """Return the schema with id *type_id*, or ``None``."""
        if type_id is None:
            return None
        for schema in self.content_types:
            if schema.id == type_id:
                return schema
        return None


class FieldChange(BaseModel):
    """Difference in a single top-level field.

    Attributes:
        field_id: Field id.
        label: Field name from the schema, or the id when unknown.
        field_type: Resolved field type, ``None`` for opaque changes.
        old: Destination value (first locale).
        new: Source value (first locale).
        summary: One-line plain-text description of the change.
    """

    field_id: str
    label: str
    field_type: str | None = None
    old: FieldValue = None
    new: FieldValue = None
    summary: str

    model_config = {"frozen": True}


class Choice(BaseModel):
    """One side of a conflict decision."""

    value: bool
    short: str
    environment: str | None = None
    updated_at: str | None = None

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        """Display label, e.g. ``[master - updated on 2024-01-01 10:00] (skip)``."""
        from .reporter import format_timestamp

        return (
            f"[{self.environment or 'unknown'} - updated on "
            f"{format_timestamp(self.updated_at)}] ({self.short})"
        )


class ChangeDescription(BaseModel):
    """Everything a decision maker needs to settle one conflict.

    Attributes:
        record_id: Id of the conflicting record.
        label: Human label ``[<type>] <name>``.
        changes: Changed fields in first-touched order.
        choices: ``skip`` (keep destination) and ``overwrite`` (use
            source), in that order.
    """

    record_id: str
    label: str
    changes: list[FieldChange] = []
    choices: list[Choice] = []

    model_config = {"frozen": True}

    @property
    def message(self) -> str:
        """Plain-text conflict message listing every changed field."""
        lines = [f"Conflict on {self.label}"]
        lines.extend(f"  {change.summary}" for change in self.changes)
        return "\n".join(lines)


class TransferPlan(BaseModel):
    """Final set of records handed to the importer."""

    entries: list[Record] = []
    assets: list[Record] = []

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.assets


class TransferReport(BaseModel):
    """Outcome of one transfer run.

    Attributes:
        source: Source environment id.
        destination: Destination environment id.
        content_type: Type filter, if any.
        policy: Conflict policy used.
        dry_run: Whether the commit step was skipped on purpose.
        state: Final state of the run.
        plan: The computed plan (empty until ``planned``).
        conflicts: Change descriptions of every conflict decided under
            the caller's policy.
        decisions: ``{record_id: overwrite}`` for those conflicts.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run finished.
        error: Commit error message, if the commit failed.
    """

    source: str
    destination: str
    content_type: str | None = None
    policy: ConflictPolicy = ConflictPolicy.SKIP
    dry_run: bool = False
    state: TransferState = TransferState.INIT
    plan: TransferPlan = TransferPlan()
    conflicts: list[ChangeDescription] = []
    decisions: dict[str, bool] = {}
    started_at: str
    completed_at: str | None = None
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def nothing_to_do(self) -> bool:
        """True when the run ended because the plan was empty."""
        return self.state == TransferState.ABORTED and self.plan.is_empty

    @property
    def overwritten(self) -> list[str]:
        """Ids of conflicts resolved in favour of the source."""
        return [rid for rid, overwrite in self.decisions.items() if overwrite]

    @property
    def kept(self) -> list[str]:
        """Ids of conflicts resolved in favour of the destination."""
        return [
            rid for rid, overwrite in self.decisions.items() if not overwrite
        ]

    def summary(self) -> str:
        """Format a short human-readable summary of the run."""
        lines = [
            f"Transfer {self.source} -> {self.destination}"
            + (" (dry run)" if self.dry_run else ""),
            f"  State:       {self.state.value}",
            f"  Entries:     {len(self.plan.entries)}",
            f"  Assets:      {len(self.plan.assets)}",
            f"  Conflicts:   {len(self.conflicts)}",
            f"  Overwritten: {len(self.overwritten)}",
            f"  Kept:        {len(self.kept)}",
        ]
        return "\n".join(lines)
