"""Field-level structural diff between two versions of a record.

``diff()`` compares the ``fields`` maps of a source and a destination
record.  The comparison itself is a path-wise deep difference (the same
kinds as the ``deep-diff`` family of tools):

* ``N`` -- a key present only in the source,
* ``D`` -- a key present only in the destination,
* ``E`` -- a value that was edited,
* ``A`` -- an array that grew or shrank.

Every top-level field touched by a difference becomes one
``FieldChange``.  The field type declared in the content type decides
how the change is summarised; ``difflib`` produces inline character
diffs for text-like values.  A value that does not fit its declared
type is reported as an opaque change instead of failing the run.
"""

from __future__ import annotations

import difflib
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .errors import DiffResolutionError
from .links import content_name
from .models import (
    ChangeDescription,
    Choice,
    ContentTypeSchema,
    FieldChange,
    FieldDefinition,
    FieldValue,
    Link,
    Record,
)

logger = logging.getLogger(__name__)

TYPE_SYMBOL = "Symbol"
TYPE_TEXT = "Text"
TYPE_RICHTEXT = "RichText"
TYPE_INTEGER = "Integer"
TYPE_NUMBER = "Number"
TYPE_DATE = "Date"
TYPE_LOCATION = "Location"
TYPE_ARRAY = "Array"
TYPE_BOOLEAN = "Boolean"
TYPE_LINK = "Link"


@dataclass(frozen=True)
class Difference:
    """One path-wise difference between two structures."""

    kind: str
    path: tuple
    lhs: Any = None
    rhs: Any = None


# ---------------------------------------------------------------------------
# Deep difference
# ---------------------------------------------------------------------------


def _normalize(value: Any) -> Any:
    """Replace links by their ``"id (kind)"`` token, recursively."""
    if isinstance(value, Link):
        return value.token()
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize(item) for key, item in value.items()}
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _scalar_equal(lhs: Any, rhs: Any) -> bool:
    if _is_number(lhs) and _is_number(rhs):
        return lhs == rhs
    return type(lhs) is type(rhs) and lhs == rhs


def deep_diff(lhs: Any, rhs: Any, path: tuple = ()) -> list[Difference]:
    """Return every difference between *lhs* and *rhs*.

    *lhs* is the old (destination) side, *rhs* the new (source) side.
    An empty list means the structures are deeply equal.
    """
    if isinstance(lhs, dict) and isinstance(rhs, dict):
        found: list[Difference] = []
        for key, value in lhs.items():
            if key not in rhs:
                found.append(Difference("D", path + (key,), lhs=value))
            else:
                found.extend(deep_diff(value, rhs[key], path + (key,)))
        for key, value in rhs.items():
            if key not in lhs:
                found.append(Difference("N", path + (key,), rhs=value))
        return found

    if isinstance(lhs, list) and isinstance(rhs, list):
        found = []
        for index, (old, new) in enumerate(zip(lhs, rhs)):
            found.extend(deep_diff(old, new, path + (index,)))
        for index in range(len(rhs), len(lhs)):
            found.append(Difference("A", path + (index,), lhs=lhs[index]))
        for index in range(len(lhs), len(rhs)):
            found.append(Difference("A", path + (index,), rhs=rhs[index]))
        return found

    if _scalar_equal(lhs, rhs):
        return []
    return [Difference("E", path, lhs=lhs, rhs=rhs)]


# ---------------------------------------------------------------------------
# Value rendering
# ---------------------------------------------------------------------------


def inline_diff(old: str, new: str) -> str:
    """Character diff of two strings as ``[-removed-]{+added+}`` markup."""
    parts: list[str] = []
    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            parts.append(old[i1:i2])
            continue
        if tag in ("delete", "replace"):
            parts.append(f"[-{old[i1:i2]}-]")
        if tag in ("insert", "replace"):
            parts.append(f"{{+{new[j1:j2]}+}}")
    return "".join(parts)


def rich_text_to_plain(document: Any) -> str:
    """Reduce a rich text document to its plain text."""
    if not isinstance(document, dict):
        return ""
    if "value" in document and isinstance(document["value"], str):
        return document["value"]
    children = document.get("content") or []
    texts = [rich_text_to_plain(child) for child in children]
    separator = " " if document.get("nodeType") == "document" else ""
    return separator.join(text for text in texts if text)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _token(value: Any) -> str:
    if isinstance(value, Link):
        return value.token()
    return _text(value)


def first_locale_value(record: Record | None, field_id: str) -> FieldValue:
    """Return the value of the first locale of a field, or ``None``."""
    if record is None:
        return None
    locales = record.fields.get(field_id) or {}
    for value in locales.values():
        return value
    return None


def _check(
    ok: bool, field_id: str, field_type: str, value: Any
) -> None:
    if not ok:
        raise DiffResolutionError(field_id, field_type, value)


def _summarize(
    definition: FieldDefinition, label: str, old: Any, new: Any
) -> str:
    """Summarise one field change according to its declared type.

    Raises:
        DiffResolutionError: If a value does not fit the declared type.
    """
    field_type = definition.type
    fid = definition.id

    if field_type in (TYPE_SYMBOL, TYPE_TEXT):
        for value in (old, new):
            _check(value is None or isinstance(value, str), fid, field_type, value)
        return f"{label}: {inline_diff(_text(old), _text(new))}"

    if field_type in (TYPE_INTEGER, TYPE_NUMBER):
        for value in (old, new):
            _check(value is None or _is_number(value), fid, field_type, value)
        return f"{label}: {inline_diff(_text(old), _text(new))}"

    if field_type == TYPE_RICHTEXT:
        for value in (old, new):
            _check(value is None or isinstance(value, dict), fid, field_type, value)
        return (
            f"{label}: "
            f"{inline_diff(rich_text_to_plain(old), rich_text_to_plain(new))}"
        )

    if field_type == TYPE_DATE:
        for value in (old, new):
            _check(value is None or isinstance(value, str), fid, field_type, value)
        return f"{label}: {_text(old)} -> {_text(new)}"

    if field_type == TYPE_BOOLEAN:
        for value in (old, new):
            _check(value is None or isinstance(value, bool), fid, field_type, value)
        return f"{label}: {json.dumps(old)} -> {json.dumps(new)}"

    if field_type == TYPE_LOCATION:
        for value in (old, new):
            _check(
                value is None
                or (isinstance(value, dict) and "lat" in value and "lon" in value),
                fid,
                field_type,
                value,
            )
        return f"{label}: {json.dumps(old)} -> {json.dumps(new)}"

    if field_type == TYPE_LINK:
        for value in (old, new):
            _check(value is None or isinstance(value, Link), fid, field_type, value)
        return f"{label}: {_token(old)} -> {_token(new)}"

    if field_type == TYPE_ARRAY:
        for value in (old, new):
            _check(value is None or isinstance(value, list), fid, field_type, value)
        old_tokens = [_token(item) for item in old or []]
        new_tokens = [_token(item) for item in new or []]
        removed = [t for t in old_tokens if t not in new_tokens]
        added = [t for t in new_tokens if t not in old_tokens]
        parts = [f"-{t}" for t in removed] + [f"+{t}" for t in added]
        if not parts:
            parts = ["reordered"]
        return f"{label}: {', '.join(parts)}"

    return label


def _field_change(
    field_id: str,
    schema: ContentTypeSchema | None,
    source: Record | None,
    destination: Record | None,
) -> FieldChange:
    definition = schema.field(field_id) if schema else None
    label = definition.name if definition and definition.name else field_id
    old = first_locale_value(destination, field_id)
    new = first_locale_value(source, field_id)

    if definition is None or not definition.type:
        return FieldChange(
            field_id=field_id, label=label, old=old, new=new, summary=label
        )

    try:
        summary = _summarize(definition, label, old, new)
    except DiffResolutionError as exc:
        logger.debug("Treating field as opaque: %s", exc)
        return FieldChange(
            field_id=field_id, label=label, old=old, new=new, summary=label
        )

    return FieldChange(
        field_id=field_id,
        label=label,
        field_type=definition.type,
        old=old,
        new=new,
        summary=summary,
    )


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def _find_schema(
    record: Record | None, schemas: Iterable[ContentTypeSchema] | None
) -> ContentTypeSchema | None:
    if record is None or record.type_id is None:
        return None
    for schema in schemas or []:
        if schema.id == record.type_id:
            return schema
    return None


def record_label(
    record: Record | None, schema: ContentTypeSchema | None
) -> str:
    """Return ``[<type name>] <content name>`` for *record*."""
    type_name = schema.name if schema and schema.name else None
    if type_name is None:
        type_name = record.kind.value if record is not None else "Entry"
    display_field = schema.display_field_id if schema else None
    return f"[{type_name}] {content_name(record, display_field)}"


def diff(
    source: Record | None,
    destination: Record | None,
    schemas: Iterable[ContentTypeSchema] | None = None,
) -> ChangeDescription | None:
    """Describe how *source* differs from *destination*.

    Args:
        source: The record in the source environment.
        destination: The same record in the destination environment,
            or ``None`` if it does not exist there yet.
        schemas: Content types used to type the fields.  ``None`` (as
            for assets) reports every change as opaque.

    Returns:
        A ``ChangeDescription``, or ``None`` when no field differs.
    """
    schemas = list(schemas or [])
    source_fields = _normalize(dict(source.fields)) if source else {}
    dest_fields = _normalize(dict(destination.fields)) if destination else {}

    differences = deep_diff(dest_fields, source_fields)
    if not differences:
        return None

    reference = destination if destination is not None else source
    schema = _find_schema(reference, schemas)

    field_ids = list(dict.fromkeys(d.path[0] for d in differences if d.path))
    changes = [
        _field_change(field_id, schema, source, destination)
        for field_id in field_ids
    ]

    return ChangeDescription(
        record_id=reference.id if reference else "",
        label=record_label(reference, schema),
        changes=changes,
        choices=[
            Choice(
                value=False,
                short="skip",
                environment=destination.environment if destination else None,
                updated_at=destination.updated_at if destination else None,
            ),
            Choice(
                value=True,
                short="overwrite",
                environment=source.environment if source else None,
                updated_at=source.updated_at if source else None,
            ),
        ],
    )
