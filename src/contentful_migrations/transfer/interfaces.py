"""Collaborator protocols consumed by the transfer engine.

The engine never talks to the network itself.  It reads environments
through an ``EnvironmentClient``, writes through an ``ImportCommitter``
and, under the manual policy, asks a ``DecisionPrompter``.
"""

from __future__ import annotations

from typing import Any, Protocol

from .models import ChangeDescription, Record


class EnvironmentClient(Protocol):
    """Paginated read access to one space.

    Every ``list_*`` method returns a page dict with the keys
    ``items`` (raw API objects), ``total``, ``skip`` and ``limit``.
    """

    def list_content_types(
        self, environment: str, skip: int = 0, limit: int = 1000
    ) -> dict[str, Any]:
        ...  # pragma: no cover

    def list_entries(
        self,
        environment: str,
        skip: int = 0,
        limit: int = 1000,
        query: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        ...  # pragma: no cover

    def list_assets(
        self, environment: str, skip: int = 0, limit: int = 1000
    ) -> dict[str, Any]:
        ...  # pragma: no cover

    def get_migration_version(self, environment: str) -> int | None:
        """Return the latest applied migration version, or ``None``."""
        ...  # pragma: no cover


class ImportCommitter(Protocol):
    """Bulk write of a transfer plan into an environment."""

    def commit(
        self,
        destination: str,
        entries: list[Record],
        assets: list[Record],
        skip_schema_changes: bool = True,
    ) -> None:
        """Write *entries* and *assets* into *destination*.

        Raises:
            CommitError: If the import failed in whole or in part.
        """
        ...  # pragma: no cover


class DecisionPrompter(Protocol):
    """Decides conflicts under the manual policy."""

    def decide(
        self, descriptions: list[ChangeDescription]
    ) -> dict[str, bool]:
        """Return ``{record_id: overwrite}``; missing ids mean skip."""
        ...  # pragma: no cover
