"""Changed-link closure over the source record graph.

When a transfer is narrowed to one content type, entries linked from
the selected entries must travel along if, and only if, they changed
themselves.  ``expand()`` walks the entry links breadth first, level by
level, and stops at unchanged records.  A ``visited`` set guarantees
termination on cyclic graphs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .links import identity_of, index_by_id, links_of
from .models import LinkKind, Record

logger = logging.getLogger(__name__)


def expand(
    seed_changed_ids: Iterable[str],
    candidate_records: Iterable[Record],
    all_source_records: Iterable[Record],
) -> list[Record]:
    """Collect changed records reachable from *candidate_records*.

    Args:
        seed_changed_ids: Ids known to differ from the destination
            (or to be missing there).
        candidate_records: Starting records; not part of the result.
        all_source_records: The full source entry graph.

    Returns:
        Every reachable changed record, each id at most once, in
        breadth-first order.
    """
    changed = set(seed_changed_ids)
    source = index_by_id(all_source_records)

    frontier = list(candidate_records)
    visited = {identity_of(record) for record in frontier}
    result: list[Record] = []
    level = 0

    while frontier:
        level += 1
        next_frontier: list[Record] = []
        for record in frontier:
            for target_id in links_of(record, LinkKind.ENTRY):
                if target_id in visited or target_id not in changed:
                    continue
                visited.add(target_id)
                target = source.get(target_id)
                if target is None:
                    continue
                next_frontier.append(target)
        if next_frontier:
            logger.debug(
                "Closure level %d added %d linked entries",
                level,
                len(next_frontier),
            )
        result.extend(next_frontier)
        frontier = next_frontier

    return result


def linked_assets(
    entries: Iterable[Record], assets: Iterable[Record]
) -> list[Record]:
    """Return the assets referenced by asset links in *entries*.

    Assets are returned in the order of *assets*; unreferenced assets
    are left out.
    """
    referenced: set[str] = set()
    for entry in entries:
        referenced.update(links_of(entry, LinkKind.ASSET))
    return [
        asset
        for asset in index_by_id(assets).values()
        if identity_of(asset) in referenced
    ]
