"""
store.py - Ordered queue of actions awaiting approval.

Insertion order is display order and "approve all" execution order. An action
leaves the store when it is approved (whatever the outcome) or discarded;
there is no retained "done" state. Derived flags such as "anything left that
bulk approval may run" are recomputed from the contents on every call.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, Iterator, List, Optional

from .actions import Action, ActionId, ActionKind


class PendingActionStore:
    """Insertion-ordered mapping of action id to action."""

    def __init__(self, actions: Iterable[Action] = ()):
        self._actions: "OrderedDict[ActionId, Action]" = OrderedDict()
        self.extend(actions)

    def add(self, action: Action) -> None:
        """Append an action.

        Raises:
            ValueError: If an action with the same id is already queued.
        """
        if action.id in self._actions:
            raise ValueError(f"Duplicate action id: {action.id}")
        self._actions[action.id] = action

    def extend(self, actions: Iterable[Action]) -> None:
        for action in actions:
            self.add(action)

    def get(self, action_id: ActionId) -> Optional[Action]:
        return self._actions.get(action_id)

    def remove(self, action_id: ActionId) -> Optional[Action]:
        """Remove and return the action, or None if it is not queued."""
        return self._actions.pop(action_id, None)

    def clear(self) -> None:
        self._actions.clear()

    def snapshot(self) -> List[Action]:
        """Current contents in insertion order, detached from the store."""
        return list(self._actions.values())

    def has_pending(self, kind: Optional[ActionKind] = None) -> bool:
        """True if any action (of ``kind``, when given) is queued."""
        if kind is None:
            return bool(self._actions)
        return any(a.kind == kind for a in self._actions.values())

    def has_bulk_approvable(self, excluded_kinds: Iterable[ActionKind] = (ActionKind.SHELL,)) -> bool:
        """True if any queued action is outside ``excluded_kinds``."""
        excluded = set(excluded_kinds)
        return any(a.kind not in excluded for a in self._actions.values())

    def counts(self) -> Dict[str, int]:
        """Number of queued actions per kind."""
        counts: Dict[str, int] = {}
        for action in self._actions.values():
            counts[action.kind.value] = counts.get(action.kind.value, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.snapshot())

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions
