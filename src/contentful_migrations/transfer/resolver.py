"""Conflict resolution for content transfers.

A record is *conflicting* when its id exists in both environments and
the diff engine reports at least one changed field.  Each conflict is
settled by a policy:

- ``ManualPolicy``: asks a ``DecisionPrompter`` once with every change
  description; ids it leaves out are skipped.
- ``ForcePolicy``: always overwrite the destination with the source.
- ``SkipAllPolicy``: always keep the destination (the default).

``ConflictResolver`` applies a policy to a batch of source records and
returns the records that should be written.  The ``create_policy()``
factory maps ``ConflictPolicy`` values to policy instances.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from .diff import diff
from .interfaces import DecisionPrompter
from .links import identity_of, index_by_id
from .models import ChangeDescription, ConflictPolicy, ContentTypeSchema, Record

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ResolutionPolicy(Protocol):
    """Protocol that all resolution policies must satisfy."""

    def decide(
        self, descriptions: list[ChangeDescription]
    ) -> dict[str, bool]:
        """Return ``{record_id: overwrite}`` for the given conflicts."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class ManualPolicy:
    """Delegate every decision to an external ``DecisionPrompter``."""

    def __init__(self, prompter: DecisionPrompter) -> None:
        self.prompter = prompter

    def decide(
        self, descriptions: list[ChangeDescription]
    ) -> dict[str, bool]:
        """Ask the prompter once; unknown ids in its answer are ignored."""
        if not descriptions:
            return {}
        answer = self.prompter.decide(descriptions) or {}
        known = {d.record_id for d in descriptions}
        return {
            record_id: bool(answer.get(record_id, False))
            for record_id in known
        }


class ForcePolicy:
    """Always resolve conflicts in favour of the source."""

    def decide(
        self, descriptions: list[ChangeDescription]
    ) -> dict[str, bool]:
        return {d.record_id: True for d in descriptions}


class SkipAllPolicy:
    """Always resolve conflicts in favour of the destination."""

    def decide(
        self, descriptions: list[ChangeDescription]
    ) -> dict[str, bool]:
        return {d.record_id: False for d in descriptions}


class PresetDecisions:
    """``DecisionPrompter`` that answers from a fixed decision map."""

    def __init__(self, decisions: dict[str, bool] | None = None) -> None:
        self.decisions = dict(decisions or {})
        self.asked: list[ChangeDescription] = []

    def decide(
        self, descriptions: list[ChangeDescription]
    ) -> dict[str, bool]:
        self.asked.extend(descriptions)
        return {
            d.record_id: self.decisions[d.record_id]
            for d in descriptions
            if d.record_id in self.decisions
        }


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ConflictResolver:
    """Apply a resolution policy to batches of source records.

    The resolver accumulates the change descriptions and decisions it
    produced in ``conflicts`` and ``decisions`` so the engine can report
    them.  It does no I/O beyond what the policy does.

    Args:
        policy: The policy that settles conflicts.
    """

    def __init__(self, policy: ResolutionPolicy) -> None:
        self.policy = policy
        self.conflicts: list[ChangeDescription] = []
        self.decisions: dict[str, bool] = {}

    def find_conflicts(
        self,
        source_records: Iterable[Record],
        destination_records: Iterable[Record],
        schemas: Iterable[ContentTypeSchema] | None = None,
    ) -> tuple[list[ChangeDescription], set[str]]:
        """Diff every source record that also exists in the destination.

        Returns:
            ``(descriptions, unchanged_ids)``: one description per
            conflicting id, and the ids present on both sides with
            identical fields.
        """
        schemas = list(schemas or [])
        destination = index_by_id(destination_records)
        descriptions: list[ChangeDescription] = []
        unchanged: set[str] = set()
        seen: set[str] = set()

        for record in source_records:
            record_id = identity_of(record)
            if record_id in seen or record_id not in destination:
                continue
            seen.add(record_id)
            description = diff(record, destination[record_id], schemas)
            if description is None:
                unchanged.add(record_id)
            else:
                descriptions.append(description)
        return descriptions, unchanged

    def resolve(
        self,
        source_records: Iterable[Record],
        destination_records: Iterable[Record],
        schemas: Iterable[ContentTypeSchema] | None = None,
    ) -> list[Record]:
        """Return the source records that should be written.

        New records pass through, unchanged records are dropped, and
        conflicting records are kept only if the policy decided to
        overwrite them.  A conflict decided by an earlier call keeps
        that decision and is not passed to the policy again.
        """
        source_records = list(source_records)
        descriptions, unchanged = self.find_conflicts(
            source_records, destination_records, schemas
        )

        undecided = [d for d in descriptions if d.record_id not in self.decisions]
        if undecided:
            decisions = self.policy.decide(undecided)
            for description in undecided:
                overwrite = bool(decisions.get(description.record_id, False))
                self.decisions[description.record_id] = overwrite
                logger.debug(
                    "Conflict on %s: %s",
                    description.record_id,
                    "overwrite" if overwrite else "skip",
                )
            self.conflicts.extend(undecided)

        conflict_ids = {d.record_id for d in descriptions}
        result: list[Record] = []
        for record in source_records:
            record_id = identity_of(record)
            if record_id in unchanged:
                continue
            if record_id in conflict_ids and not self.decisions[record_id]:
                continue
            result.append(record)
        return result


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_policy(
    policy: ConflictPolicy | str,
    prompter: DecisionPrompter | None = None,
) -> ResolutionPolicy:
    """Create a resolution policy.

    Args:
        policy: ``"manual"``, ``"force"`` or ``"skip"``.
        prompter: Decision prompter, required for ``"manual"``.

    Raises:
        ValueError: If the policy is unknown or ``"manual"`` is requested
            without a prompter.
    """
    try:
        kind = ConflictPolicy(policy)
    except ValueError:
        raise ValueError(
            f"Unknown conflict policy: '{policy}'. Valid policies: "
            f"{sorted(p.value for p in ConflictPolicy)}"
        ) from None

    if kind == ConflictPolicy.MANUAL:
        if prompter is None:
            raise ValueError("The manual policy requires a decision prompter")
        return ManualPolicy(prompter)
    if kind == ConflictPolicy.FORCE:
        return ForcePolicy()
    return SkipAllPolicy()
