"""Environment snapshot retrieval.

``GraphFetcher`` reads content types, entries and assets of one
environment page by page and returns them as an immutable
``RecordSet``.  A collection is either read completely or the whole
fetch fails with ``FetchError``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .errors import FetchError
from .interfaces import EnvironmentClient
from .models import RecordSet
from .records import parse_content_type, parse_record

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


class GraphFetcher:
    """Fetch complete environment snapshots through an ``EnvironmentClient``.

    Args:
        client: Client used for the paginated list calls.
        page_size: Items per request, capped at ``MAX_PAGE_SIZE``.
    """

    def __init__(
        self, client: EnvironmentClient, page_size: int = MAX_PAGE_SIZE
    ) -> None:
        self.client = client
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))

    def fetch(
        self, environment: str, type_filter: str | None = None
    ) -> RecordSet:
        """Return the full snapshot of *environment*.

        Args:
            environment: Environment id.
            type_filter: Optional content type id.  When given,
                ``filtered_entries`` holds the entries of that type;
                ``entries`` still holds all entries.

        Raises:
            FetchError: If any page of any collection cannot be read.
        """
        logger.info("Fetching content from environment %s", environment)
        raw_types = self._paginate(
            environment, "content types", self.client.list_content_types
        )
        raw_entries = self._paginate(
            environment, "entries", self.client.list_entries
        )
        raw_assets = self._paginate(
            environment, "assets", self.client.list_assets
        )

        entries = [parse_record(item) for item in raw_entries]
        filtered = None
        if type_filter:
            filtered = [e for e in entries if e.type_id == type_filter]

        snapshot = RecordSet(
            environment=environment,
            content_types=[parse_content_type(item) for item in raw_types],
            entries=entries,
            assets=[parse_record(item) for item in raw_assets],
            filtered_entries=filtered,
        )
        logger.info(
            "Fetched %d content types, %d entries, %d assets from %s",
            len(snapshot.content_types),
            len(snapshot.entries),
            len(snapshot.assets),
            environment,
        )
        return snapshot

    def _paginate(
        self,
        environment: str,
        collection: str,
        list_page: Callable[..., dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Read every page of one collection."""
        items: list[dict[str, Any]] = []
        skip = 0
        while True:
            try:
                page = list_page(environment, skip=skip, limit=self.page_size)
            except FetchError:
                raise
            except Exception as exc:
                raise FetchError(environment, collection, str(exc)) from exc

            page_items = page.get("items") or []
            items.extend(page_items)
            total = page.get("total")
            skip += len(page_items)
            logger.debug(
                "Fetched %d/%s %s from %s",
                skip,
                total if total is not None else "?",
                collection,
                environment,
            )

            if not page_items:
                break
            if total is not None and skip >= total:
                break
            if total is None and len(page_items) < self.page_size:
                break
        return items
