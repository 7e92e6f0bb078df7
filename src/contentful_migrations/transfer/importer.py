"""Write a transfer plan into the destination environment.

``ManagementImporter`` is the ``ImportCommitter`` backed by the Content
Management API.  Assets are written before entries so entry links
resolve on publish.  Every record is upserted and then published;
content types are never touched.  Failures are collected per record and
reported together in one ``CommitError``.
"""

from __future__ import annotations

import logging

import requests

from ..core.client import ManagementClient
from .errors import CommitError
from .models import LinkKind, Record
from .records import record_payload

logger = logging.getLogger(__name__)

_COLLECTIONS = {LinkKind.ENTRY: "entries", LinkKind.ASSET: "assets"}


class ManagementImporter:
    """Commit records through a ``ManagementClient``.

    Args:
        client: Client of the space holding the destination environment.
        publish: Publish every record after writing it.
    """

    def __init__(self, client: ManagementClient, publish: bool = True) -> None:
        self.client = client
        self.publish = publish

    def commit(
        self,
        destination: str,
        entries: list[Record],
        assets: list[Record],
        skip_schema_changes: bool = True,
    ) -> None:
        """Upsert and publish *assets* then *entries* in *destination*.

        Raises:
            CommitError: If writing any record failed.  Records written
                before the failure stay written.
        """
        if not skip_schema_changes:
            logger.warning(
                "Content model changes are not transferred; only entries "
                "and assets are written"
            )

        errors: list[str] = []
        written = 0
        for record in [*assets, *entries]:
            try:
                self._write(destination, record)
                written += 1
            except (requests.RequestException, KeyError, ValueError) as e:
                message = f"{record.kind.value} {record.id}: {e}"
                logger.error("Failed to import %s", message)
                errors.append(message)

        logger.info(
            "Imported %d of %d records into %s",
            written,
            len(entries) + len(assets),
            destination,
        )
        if errors:
            raise CommitError(errors)

    def _write(self, destination: str, record: Record) -> None:
        collection = _COLLECTIONS[record.kind]
        existing = self.client.get_record(destination, collection, record.id)
        version = existing["sys"]["version"] if existing else None

        result = self.client.put_record(
            destination,
            collection,
            record.id,
            record_payload(record),
            version=version,
            content_type_id=record.type_id if version is None else None,
        )
        logger.debug(
            "%s %s %s",
            "Updated" if existing else "Created",
            record.kind.value,
            record.id,
        )
        if self.publish:
            self.client.publish_record(
                destination, collection, record.id, result["sys"]["version"]
            )
