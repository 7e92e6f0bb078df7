"""Transfer engine that orchestrates a complete content transfer.

The ``TransferEngine`` ties together fetcher, resolver, closure and
importer into one run.  It:

1. Verifies both environments are at the same migration version.
2. Fetches both environment snapshots.
3. Resolves entry conflicts, either over all entries or, with a
   content type filter, over the filtered entries plus the changed
   entries they link to.
4. Resolves conflicts of the assets linked from the resulting entries.
5. Builds the ``TransferPlan`` and commits it exactly once.

Nothing is written before step 5, so a run can be abandoned at any
earlier point without side effects.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from ..core.async_utils import gather_limited, run_sync, run_sync_limited
from .closure import expand, linked_assets
from .errors import CommitError, StateMismatchError
from .fetcher import MAX_PAGE_SIZE, GraphFetcher
from .interfaces import DecisionPrompter, EnvironmentClient, ImportCommitter
from .links import identity_of, index_by_id
from .models import (
    ConflictPolicy,
    ContentTypeSchema,
    Record,
    RecordSet,
    TransferPlan,
    TransferReport,
    TransferState,
)
from .resolver import ConflictResolver, SkipAllPolicy, create_policy

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unique(records: list[Record]) -> list[Record]:
    return list(index_by_id(records).values())


class TransferEngine:
    """Transfer content from one environment into another.

    Args:
        client: Read access to both environments.
        committer: Writes the final plan into the destination.
        source: Source environment id.
        destination: Destination environment id.
        content_type: Optional content type id to narrow the transfer.
        policy: Conflict policy for the caller's decisions.
        prompter: Decision prompter, required for the manual policy.
        confirm: Optional callback asked before committing; returning
            ``False`` aborts the run.
        page_size: Page size used while fetching.
    """

    def __init__(
        self,
        client: EnvironmentClient,
        committer: ImportCommitter,
        source: str,
        destination: str,
        content_type: str | None = None,
        policy: ConflictPolicy | str = ConflictPolicy.SKIP,
        prompter: DecisionPrompter | None = None,
        confirm: Callable[[TransferPlan], bool] | None = None,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.client = client
        self.committer = committer
        self.source = source
        self.destination = destination
        self.content_type = content_type
        self.policy = ConflictPolicy(policy)
        self.prompter = prompter
        self.confirm = confirm

        # Fail early on a manual policy without prompter.
        create_policy(self.policy, prompter)

        self.fetcher = GraphFetcher(client, page_size=page_size)
        self.state = TransferState.INIT
        self.last_report: TransferReport | None = None
        self.content_types: list[ContentTypeSchema] = []

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def run(self, dry_run: bool = False) -> TransferReport:
        """Execute a full transfer.

        Args:
            dry_run: If ``True``, compute the plan but do not commit it.

        Returns:
            A ``TransferReport`` describing what was (or would be) done.

        Raises:
            StateMismatchError: The migration versions differ.
            FetchError: An environment could not be read completely.
            CommitError: The import failed.
        """
        started_at = _now()
        self._transition(TransferState.INIT)

        source_version = self.client.get_migration_version(self.source)
        destination_version = self.client.get_migration_version(
            self.destination
        )
        self._verify(source_version, destination_version)

        source_set = self.fetcher.fetch(self.source, self.content_type)
        destination_set = self.fetcher.fetch(self.destination)
        self._transition(TransferState.FETCHED)

        return self._plan_and_commit(
            source_set, destination_set, dry_run, started_at
        )

    async def arun(self, dry_run: bool = False) -> TransferReport:
        """Async variant of ``run()``.

        Both environments are fetched concurrently in worker threads;
        everything else behaves exactly like ``run()``.
        """
        started_at = _now()
        self._transition(TransferState.INIT)

        source_version, destination_version = await gather_limited(
            [
                run_sync_limited(
                    self.client.get_migration_version, self.source
                ),
                run_sync_limited(
                    self.client.get_migration_version, self.destination
                ),
            ]
        )
        self._verify(source_version, destination_version)

        source_set, destination_set = await gather_limited(
            [
                run_sync_limited(
                    self.fetcher.fetch, self.source, self.content_type
                ),
                run_sync_limited(self.fetcher.fetch, self.destination),
            ]
        )
        self._transition(TransferState.FETCHED)

        return await run_sync(
            self._plan_and_commit,
            source_set,
            destination_set,
            dry_run,
            started_at,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _verify(
        self, source_version: int | None, destination_version: int | None
    ) -> None:
        """Refuse to run against environments at different versions."""
        if source_version != destination_version:
            self._transition(TransferState.ABORTED)
            raise StateMismatchError(
                self.source,
                source_version,
                self.destination,
                destination_version,
            )
        logger.info(
            "Migration state verified: %s and %s at version %s",
            self.source,
            self.destination,
            source_version,
        )
        self._transition(TransferState.VERIFIED)

    def build_plan(
        self,
        source_set: RecordSet,
        destination_set: RecordSet,
        resolver: ConflictResolver,
    ) -> TransferPlan:
        """Resolve entries and assets into the final plan."""
        schemas = destination_set.content_types

        if self.content_type:
            entries = self._resolve_filtered(
                source_set, destination_set, resolver
            )
        else:
            entries = resolver.resolve(
                source_set.entries, destination_set.entries, schemas
            )
        entries = _unique(entries)

        candidates = linked_assets(entries, source_set.assets)
        assets = _unique(
            resolver.resolve(candidates, destination_set.assets, None)
        )
        return TransferPlan(entries=entries, assets=assets)

    def _resolve_filtered(
        self,
        source_set: RecordSet,
        destination_set: RecordSet,
        resolver: ConflictResolver,
    ) -> list[Record]:
        """Resolve the filtered entries and the changed entries they link."""
        schemas = destination_set.content_types
        filtered_resolved = resolver.resolve(
            source_set.filtered_entries or [],
            destination_set.entries,
            schemas,
        )

        changed_ids = self.changed_ids(source_set, destination_set)
        linked = expand(changed_ids, filtered_resolved, source_set.entries)
        logger.info(
            "%d filtered entries link to %d changed entries",
            len(filtered_resolved),
            len(linked),
        )

        linked_resolved = resolver.resolve(
            linked, destination_set.entries, schemas
        )
        return [*filtered_resolved, *linked_resolved]

    @staticmethod
    def changed_ids(
        source_set: RecordSet, destination_set: RecordSet
    ) -> set[str]:
        """Ids of source entries that are new or differ from the destination.

        Runs a throw-away resolution pass under the skip-all policy over
        every entry; its surviving records are the new ones and its
        recorded conflicts are the changed ones.
        """
        scout = ConflictResolver(SkipAllPolicy())
        new_records = scout.resolve(
            source_set.entries,
            destination_set.entries,
            destination_set.content_types,
        )
        changed = {identity_of(r) for r in new_records}
        changed.update(d.record_id for d in scout.conflicts)
        return changed

    def _plan_and_commit(
        self,
        source_set: RecordSet,
        destination_set: RecordSet,
        dry_run: bool,
        started_at: str,
    ) -> TransferReport:
        self.content_types = source_set.content_types
        resolver = ConflictResolver(create_policy(self.policy, self.prompter))
        plan = self.build_plan(source_set, destination_set, resolver)
        self._transition(TransferState.RESOLVED)
        self._transition(TransferState.PLANNED)

        def _report(state: TransferState, error: str | None = None):
            report = TransferReport(
                source=self.source,
                destination=self.destination,
                content_type=self.content_type,
                policy=self.policy,
                dry_run=dry_run,
                state=state,
                plan=plan,
                conflicts=resolver.conflicts,
                decisions=resolver.decisions,
                started_at=started_at,
                completed_at=_now(),
                error=error,
            )
            self.last_report = report
            return report

        if plan.is_empty:
            logger.info("Nothing to transfer: destination is up to date")
            self._transition(TransferState.ABORTED)
            return _report(TransferState.ABORTED)

        if dry_run:
            logger.info(
                "Dry run: %d entries and %d assets would be transferred",
                len(plan.entries),
                len(plan.assets),
            )
            return _report(TransferState.PLANNED)

        if self.confirm is not None and not self.confirm(plan):
            logger.info("Transfer declined before commit")
            self._transition(TransferState.ABORTED)
            return _report(TransferState.ABORTED)

        logger.info(
            "Transferring %d entries and %d assets from %s to %s",
            len(plan.entries),
            len(plan.assets),
            self.source,
            self.destination,
        )
        try:
            self.committer.commit(
                self.destination,
                plan.entries,
                plan.assets,
                skip_schema_changes=True,
            )
        except CommitError as exc:
            logger.error("Import into %s failed: %s", self.destination, exc)
            self._transition(TransferState.ABORTED)
            _report(TransferState.ABORTED, error=str(exc))
            raise
        except Exception as exc:
            logger.error("Import into %s failed: %s", self.destination, exc)
            self._transition(TransferState.ABORTED)
            _report(TransferState.ABORTED, error=str(exc))
            raise CommitError([str(exc)]) from exc

        self._transition(TransferState.COMMITTED)
        return _report(TransferState.COMMITTED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, state: TransferState) -> None:
        logger.debug("Transfer state: %s -> %s", self.state.value, state.value)
        self.state = state
