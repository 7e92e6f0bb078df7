"""Conversion between raw Management API objects and transfer models.

Link values are recognised by their ``sys`` block::

    {"sys": {"type": "Link", "linkType": "Entry", "id": "abc"}}

and become ``Link`` instances; arrays are converted element-wise.  All
other values (including rich text documents and locations) are kept as
plain data.
"""

from __future__ import annotations

from typing import Any

from .models import (
    ContentTypeSchema,
    FieldDefinition,
    FieldValue,
    Link,
    LinkKind,
    Record,
)

_LINK_KINDS = {kind.value: kind for kind in LinkKind}


def _sys_id(node: Any) -> str | None:
    if isinstance(node, dict):
        sys = node.get("sys")
        if isinstance(sys, dict):
            return sys.get("id")
    return None


def parse_value(value: Any) -> FieldValue:
    """Convert a raw locale value into a ``FieldValue``."""
    if isinstance(value, list):
        return [parse_value(item) for item in value]
    if isinstance(value, dict):
        sys = value.get("sys")
        if (
            isinstance(sys, dict)
            and sys.get("type") == "Link"
            and sys.get("linkType") in _LINK_KINDS
            and sys.get("id")
        ):
            return Link(
                target_id=sys["id"], kind=_LINK_KINDS[sys["linkType"]]
            )
    return value


def dump_value(value: FieldValue) -> Any:
    """Inverse of ``parse_value``."""
    if isinstance(value, list):
        return [dump_value(item) for item in value]
    if isinstance(value, Link):
        return {
            "sys": {
                "type": "Link",
                "linkType": value.kind.value,
                "id": value.target_id,
            }
        }
    return value


def parse_record(raw: dict[str, Any]) -> Record:
    """Build a ``Record`` from an API entry or asset object."""
    sys = raw.get("sys") or {}
    kind = _LINK_KINDS.get(sys.get("type", ""), LinkKind.ENTRY)
    fields = {
        field_id: {
            locale: parse_value(value)
            for locale, value in (locales or {}).items()
        }
        for field_id, locales in (raw.get("fields") or {}).items()
    }
    return Record(
        id=sys.get("id", ""),
        kind=kind,
        type_id=_sys_id(sys.get("contentType")),
        created_at=sys.get("createdAt"),
        updated_at=sys.get("updatedAt"),
        environment=_sys_id(sys.get("environment")),
        version=sys.get("version"),
        fields=fields,
    )


def parse_content_type(raw: dict[str, Any]) -> ContentTypeSchema:
    """Build a ``ContentTypeSchema`` from an API content type object."""
    definitions = [
        FieldDefinition(
            id=field["id"],
            name=field.get("name") or field["id"],
            type=field.get("type", ""),
            link_type=field.get("linkType"),
            items=field.get("items"),
        )
        for field in raw.get("fields") or []
        if field.get("id")
    ]
    return ContentTypeSchema(
        id=_sys_id(raw) or "",
        name=raw.get("name", ""),
        display_field_id=raw.get("displayField"),
        fields=definitions,
    )


def record_payload(record: Record) -> dict[str, Any]:
    """Return the ``{"fields": ...}`` body used to write *record*."""
    return {
        "fields": {
            field_id: {
                locale: dump_value(value) for locale, value in locales.items()
            }
            for field_id, locales in record.fields.items()
        }
    }
