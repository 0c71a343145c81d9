"""Tests for the action data model and the pending store."""

import dataclasses
import re

import pytest

from only_agent.runtime.actions import (
    Action,
    ActionKind,
    CreateAction,
    DeleteAction,
    ModifyAction,
    ShellAction,
    action_from_dict,
    build_action,
    generate_action_id,
)
from only_agent.runtime.errors import IncompleteActionError
from only_agent.runtime.store import PendingActionStore


# =============================================================================
# Action Model
# =============================================================================


class TestActionKind:
    """Tests for ActionKind lookup."""

    def test_lookup_is_case_insensitive(self):
        assert ActionKind.lookup("modify") is ActionKind.MODIFY
        assert ActionKind.lookup(" Fetch ") is ActionKind.FETCH

    def test_lookup_unknown(self):
        assert ActionKind.lookup("RENAME") is None


class TestActions:
    """Tests for action construction and serialization."""

    def test_id_format(self):
        """IDs carry 64 random bits as 16 hex digits."""
        assert re.fullmatch(r"act-[0-9a-f]{16}", generate_action_id())

    def test_base_class_is_abstract(self):
        """Only the per-kind variants can be constructed."""
        with pytest.raises(TypeError):
            Action(id="act-base")

    def test_build_action_assigns_id(self):
        action = build_action(ActionKind.DELETE, path="a.txt")

        assert isinstance(action, DeleteAction)
        assert action.id.startswith("act-")

    def test_build_action_ignores_foreign_fields(self):
        """Fields of other kinds are dropped."""
        action = build_action(ActionKind.SHELL, command="ls", path="ignored")

        assert action == ShellAction(id=action.id, command="ls")

    def test_missing_field_raises(self):
        """Constructing an incomplete variant fails."""
        with pytest.raises(IncompleteActionError) as exc_info:
            build_action(ActionKind.MODIFY, path="a.py", before="x")

        assert exc_info.value.missing == ["content"]
        assert exc_info.value.kind == "MODIFY"

    def test_blank_path_is_missing(self):
        with pytest.raises(IncompleteActionError) as exc_info:
            CreateAction(id="act-1", path="  ", content="x")

        assert exc_info.value.missing == ["path"]

    def test_actions_are_immutable(self):
        action = DeleteAction(id="act-1", path="a.txt")

        with pytest.raises(dataclasses.FrozenInstanceError):
            action.path = "b.txt"

    def test_to_dict(self):
        action = ModifyAction(id="act-1", path="a.py", before="x", content="y")

        assert action.to_dict() == {
            "id": "act-1",
            "kind": "MODIFY",
            "path": "a.py",
            "before": "x",
            "content": "y",
        }

    def test_from_dict_roundtrip(self):
        action = CreateAction(id="act-2", path="b.txt", content="")

        assert action_from_dict(action.to_dict()) == action

    def test_from_dict_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown action kind"):
            action_from_dict({"id": "act-3", "kind": "MOVE"})


# =============================================================================
# PendingActionStore
# =============================================================================


@pytest.fixture
def actions():
    return [
        DeleteAction(id="act-a", path="a.txt"),
        ShellAction(id="act-b", command="make"),
        CreateAction(id="act-c", path="c.txt", content="c"),
    ]


class TestPendingActionStore:
    """Tests for the ordered pending queue."""

    def test_insertion_order(self, actions):
        store = PendingActionStore(actions)

        assert [a.id for a in store] == ["act-a", "act-b", "act-c"]
        assert len(store) == 3
        assert "act-b" in store

    def test_duplicate_id_rejected(self, actions):
        store = PendingActionStore(actions)

        with pytest.raises(ValueError, match="Duplicate"):
            store.add(DeleteAction(id="act-a", path="other.txt"))

    def test_remove(self, actions):
        store = PendingActionStore(actions)

        assert store.remove("act-b").id == "act-b"
        assert store.remove("act-b") is None
        assert [a.id for a in store.snapshot()] == ["act-a", "act-c"]

    def test_snapshot_is_detached(self, actions):
        """Mutating during iteration is safe."""
        store = PendingActionStore(actions)

        for action in store:
            store.remove(action.id)

        assert len(store) == 0

    def test_derived_flags_recomputed(self, actions):
        """Flags follow the current contents."""
        store = PendingActionStore(actions)
        assert store.has_pending()
        assert store.has_bulk_approvable()

        store.remove("act-a")
        store.remove("act-c")

        assert store.has_pending()
        assert store.has_pending(ActionKind.SHELL)
        assert not store.has_pending(ActionKind.DELETE)
        assert not store.has_bulk_approvable()

        store.clear()
        assert not store.has_pending()

    def test_counts(self, actions):
        store = PendingActionStore(actions)

        assert store.counts() == {"DELETE": 1, "SHELL": 1, "CREATE": 1}
