"""Identity and link extraction for records.

Pure helpers used by the diff engine, the link closure and the
reporter.  None of them touch the network.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .models import FieldValue, Link, LinkKind, Record


def identity_of(record: Record) -> str:
    """Return the id that identifies *record* across environments."""
    return record.id


def type_of(record: Record) -> str | None:
    """Return the content type id of *record* (``None`` for assets)."""
    return record.type_id


def _flatten(value: FieldValue) -> Iterator[FieldValue]:
    if isinstance(value, list):
        for item in value:
            yield from _flatten(item)
    else:
        yield value


def iter_links(record: Record) -> Iterator[Link]:
    """Yield every link found in any field and locale of *record*."""
    for locales in record.fields.values():
        for value in locales.values():
            for item in _flatten(value):
                if isinstance(item, Link):
                    yield item


def links_of(record: Record, kind: LinkKind) -> list[str]:
    """Return target ids of all links of *kind* in *record*.

    Duplicates are kept; callers de-duplicate where it matters.
    """
    return [link.target_id for link in iter_links(record) if link.kind == kind]


def linked_ids(record: Record) -> list[str]:
    """Return unique target ids of all entry and asset links, in order."""
    return list(dict.fromkeys(link.target_id for link in iter_links(record)))


def index_by_id(records: Iterable[Record]) -> dict[str, Record]:
    """Map record ids to records; the first occurrence of an id wins."""
    index: dict[str, Record] = {}
    for record in records:
        index.setdefault(identity_of(record), record)
    return index


def content_name(record: Record | None, display_field: str | None = None) -> str:
    """Return a human name for *record*.

    Tries the display field, then ``name``, ``title`` and ``id`` fields
    (first locale, string values only), then the record id.
    """
    if record is None:
        return "unknown"
    candidates = [display_field, "name", "title", "id"]
    for field_id in candidates:
        if not field_id:
            continue
        locales = record.fields.get(field_id) or {}
        for value in locales.values():
            if isinstance(value, str):
                return value
            break
    return record.id or "unknown"
