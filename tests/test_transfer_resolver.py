"""Tests for conflict resolution policies and the ConflictResolver."""

from __future__ import annotations

import pytest

from contentful_migrations.transfer.models import ConflictPolicy, Record
from contentful_migrations.transfer.resolver import (
    ConflictResolver,
    ForcePolicy,
    ManualPolicy,
    PresetDecisions,
    SkipAllPolicy,
    create_policy,
)


def _record(record_id: str, environment: str = "staging", **fields) -> Record:
    return Record(
        id=record_id,
        type_id="page",
        environment=environment,
        fields={k: {"en-US": v} for k, v in fields.items()},
    )


@pytest.fixture
def records():
    """Source and destination with one new, one changed, one unchanged record."""
    source = [
        _record("new", title="brand new"),
        _record("changed", title="v2"),
        _record("same", title="equal"),
    ]
    destination = [
        _record("changed", "master", title="v1"),
        _record("same", "master", title="equal"),
        _record("only-dest", "master", title="x"),
    ]
    return source, destination


class RecordingPrompter:
    def __init__(self, answer):
        self.answer = answer
        self.calls = []

    def decide(self, descriptions):
        self.calls.append(list(descriptions))
        return self.answer


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class TestCreatePolicy:
    def test_force(self):
        assert isinstance(create_policy("force"), ForcePolicy)

    def test_skip(self):
        assert isinstance(create_policy(ConflictPolicy.SKIP), SkipAllPolicy)

    def test_manual_requires_prompter(self):
        with pytest.raises(ValueError, match="prompter"):
            create_policy("manual")

    def test_manual(self):
        policy = create_policy("manual", PresetDecisions())
        assert isinstance(policy, ManualPolicy)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown conflict policy"):
            create_policy("merge")


class TestPresetDecisions:
    def test_answers_known_ids_and_records_questions(self, records):
        source, destination = records
        prompter = PresetDecisions({"changed": True, "other": True})
        descriptions, _ = ConflictResolver(SkipAllPolicy()).find_conflicts(
            source, destination
        )
        assert prompter.decide(descriptions) == {"changed": True}
        assert [d.record_id for d in prompter.asked] == ["changed"]


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class TestConflictResolver:
    def test_find_conflicts(self, records):
        source, destination = records
        descriptions, unchanged = ConflictResolver(SkipAllPolicy()).find_conflicts(
            source, destination
        )
        assert [d.record_id for d in descriptions] == ["changed"]
        assert unchanged == {"same"}

    def test_skip_keeps_destination(self, records):
        source, destination = records
        resolver = ConflictResolver(SkipAllPolicy())
        result = resolver.resolve(source, destination)
        assert [r.id for r in result] == ["new"]
        assert resolver.decisions == {"changed": False}

    def test_force_overwrites(self, records):
        source, destination = records
        resolver = ConflictResolver(ForcePolicy())
        result = resolver.resolve(source, destination)
        assert [r.id for r in result] == ["new", "changed"]
        assert resolver.decisions == {"changed": True}

    def test_unchanged_records_dropped(self, records):
        source, destination = records
        result = ConflictResolver(ForcePolicy()).resolve(source, destination)
        assert "same" not in [r.id for r in result]

    def test_manual_asks_once(self, records):
        source, destination = records
        prompter = RecordingPrompter({"changed": True})
        result = ConflictResolver(ManualPolicy(prompter)).resolve(source, destination)
        assert len(prompter.calls) == 1
        assert [d.record_id for d in prompter.calls[0]] == ["changed"]
        assert [r.id for r in result] == ["new", "changed"]

    def test_manual_missing_answer_means_skip(self, records):
        source, destination = records
        prompter = RecordingPrompter({})
        resolver = ConflictResolver(ManualPolicy(prompter))
        result = resolver.resolve(source, destination)
        assert [r.id for r in result] == ["new"]
        assert resolver.decisions == {"changed": False}

    def test_manual_none_answer_means_skip(self, records):
        source, destination = records
        result = ConflictResolver(ManualPolicy(RecordingPrompter(None))).resolve(
            source, destination
        )
        assert [r.id for r in result] == ["new"]

    def test_manual_not_asked_without_conflicts(self):
        prompter = RecordingPrompter({})
        result = ConflictResolver(ManualPolicy(prompter)).resolve(
            [_record("new", title="x")], []
        )
        assert prompter.calls == []
        assert [r.id for r in result] == ["new"]

    def test_new_records_pass_through_in_order(self):
        source = [_record(f"e{i}", title=str(i)) for i in range(5)]
        result = ConflictResolver(SkipAllPolicy()).resolve(source, [])
        assert [r.id for r in result] == ["e0", "e1", "e2", "e3", "e4"]

    def test_accumulates_over_passes(self, records):
        source, destination = records
        resolver = ConflictResolver(ForcePolicy())
        resolver.resolve(source, destination)
        resolver.resolve([_record("only-dest", title="y")], destination)
        assert [d.record_id for d in resolver.conflicts] == ["changed", "only-dest"]

    def test_empty_input(self):
        assert ConflictResolver(ForcePolicy()).resolve([], []) == []

    def test_decision_is_final_across_passes(self, records):
        source, destination = records

        class ChangingPrompter(RecordingPrompter):
            def decide(self, descriptions):
                super().decide(descriptions)
                return {d.record_id: len(self.calls) > 1 for d in descriptions}

        prompter = ChangingPrompter(None)
        resolver = ConflictResolver(ManualPolicy(prompter))
        assert [r.id for r in resolver.resolve(source, destination)] == ["new"]

        again = resolver.resolve([_record("changed", title="v2")], destination)

        assert again == []
        assert len(prompter.calls) == 1
        assert [d.record_id for d in resolver.conflicts] == ["changed"]
        assert resolver.decisions == {"changed": False}

    def test_only_undecided_conflicts_reach_policy(self, records):
        source, destination = records
        prompter = RecordingPrompter({"changed": True, "only-dest": True})
        resolver = ConflictResolver(ManualPolicy(prompter))
        resolver.resolve(source, destination)

        result = resolver.resolve(
            [_record("changed", title="v2"), _record("only-dest", title="y")],
            destination,
        )

        assert [d.record_id for d in prompter.calls[1]] == ["only-dest"]
        assert [r.id for r in result] == ["changed", "only-dest"]
