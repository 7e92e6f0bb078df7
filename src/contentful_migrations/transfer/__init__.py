"""Content transfer between environments of one space.

Public API for moving new and changed entries and assets from a source
environment into a destination environment that is at the same
migration version.

Architecture
------------
Both environments are fetched once.  Every source record whose id
exists in the destination is diffed field by field; records that differ
are *conflicts* and are settled by a policy (keep the destination,
overwrite it, or ask).  Identical records are dropped.  When the run is
narrowed to a content type, the entries linked from the selected ones
travel along if they changed themselves (breadth-first, cycle safe).
Assets linked from the resulting entries are resolved the same way.
The final plan is handed to the importer exactly once.

Modules:

- ``engine``     -- ``TransferEngine``: orchestrates a full transfer.
- ``fetcher``    -- ``GraphFetcher``: paginated environment snapshots.
- ``diff``       -- Field-level deep diff and change descriptions.
- ``resolver``   -- Conflict policies and ``ConflictResolver``.
- ``closure``    -- Changed-link closure and linked assets.
- ``links``      -- Record identity and link extraction.
- ``records``    -- Raw API object conversion.
- ``importer``   -- ``ManagementImporter``: commit through the API.
- ``interfaces`` -- Collaborator protocols.
- ``models``     -- Data contracts.
- ``errors``     -- Exceptions.
- ``reporter``   -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from contentful_migrations.core.client import ManagementClient
    from contentful_migrations.transfer import (
        ManagementImporter,
        TransferEngine,
        format_transfer_report,
    )

    client = ManagementClient(config)
    engine = TransferEngine(
        client=client,
        committer=ManagementImporter(client),
        source="staging",
        destination="master",
        content_type="page",
        policy="force",
    )

    preview = engine.run(dry_run=True)
    print(format_transfer_report(preview))

    report = engine.run()
"""

from .engine import TransferEngine
from .errors import (
    CommitError,
    DiffResolutionError,
    FetchError,
    StateMismatchError,
    TransferError,
)
from .importer import ManagementImporter
from .models import (
    ChangeDescription,
    ConflictPolicy,
    Record,
    RecordSet,
    TransferPlan,
    TransferReport,
    TransferState,
)
from .reporter import (
    format_change_description,
    format_plan_tree,
    format_transfer_report,
    report_to_json,
)
from .resolver import ConflictResolver, PresetDecisions, create_policy

__all__ = [
    "ChangeDescription",
    "CommitError",
    "ConflictPolicy",
    "ConflictResolver",
    "DiffResolutionError",
    "FetchError",
    "ManagementImporter",
    "PresetDecisions",
    "Record",
    "RecordSet",
    "StateMismatchError",
    "TransferEngine",
    "TransferError",
    "TransferPlan",
    "TransferReport",
    "TransferState",
    "create_policy",
    "format_change_description",
    "format_plan_tree",
    "format_transfer_report",
    "report_to_json",
]
