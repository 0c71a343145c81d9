"""
actions.py - Typed action records extracted from agent responses.

An action is one proposed operation against the project. Each kind is its own
frozen dataclass carrying only the fields that kind needs:

    ModifyAction(id, path, before, content)   replace a located span
    CreateAction(id, path, content)           write a whole file
    DeleteAction(id, path)                    remove a file
    ShellAction(id, command)                  hand a command to a terminal
    FetchAction(id, url)                      open a URL externally

Constructing a variant with a missing required field raises
IncompleteActionError, so anything that reaches the pending queue is complete.

Usage:
    from only_agent.runtime.actions import build_action, ActionKind

    action = build_action(ActionKind.CREATE, path="a.txt", content="hello")
    action.to_dict()  # {"id": "act-...", "kind": "CREATE", ...}
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Type

from .errors import IncompleteActionError

# Type alias
ActionId = str


class ActionKind(str, Enum):
    """Closed set of action kinds."""

    MODIFY = "MODIFY"
    CREATE = "CREATE"
    DELETE = "DELETE"
    SHELL = "SHELL"
    FETCH = "FETCH"

    @classmethod
    def lookup(cls, token: str) -> Optional["ActionKind"]:
        """Return the kind for a marker token, or None if unrecognized."""
        try:
            return cls(token.strip().upper())
        except ValueError:
            return None


def generate_action_id() -> ActionId:
    """Generate a unique action ID.

    Creates IDs in the format: act-xxxxxxxxxxxxxxxx (64 random bits).

    Example:
        >>> generate_action_id()  # e.g., "act-9f86d081884c7d65"
    """
    return f"act-{secrets.token_hex(8)}"


@dataclass(frozen=True)
class Action(ABC):
    """Base class for all action variants. Only the subclasses are constructed."""

    id: ActionId

    kind: ClassVar[ActionKind]
    # Fields that must be present (not None). Strings listed in
    # _non_empty must additionally be non-blank.
    _required: ClassVar[Tuple[str, ...]] = ()
    _non_empty: ClassVar[Tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        missing = []
        for name in self._required:
            value = getattr(self, name)
            if value is None or (name in self._non_empty and not str(value).strip()):
                missing.append(name)
        if missing:
            raise IncompleteActionError(self.kind.value, missing)

    @property
    @abstractmethod
    def target(self) -> str:
        """Short human-readable description of what the action touches."""
        ...

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        data: Dict[str, Any] = {"id": self.id, "kind": self.kind.value}
        for f in fields(self):
            if f.name != "id":
                data[f.name] = getattr(self, f.name)
        return data


@dataclass(frozen=True)
class ModifyAction(Action):
    """Replace the span matching ``before`` in ``path`` with ``content``."""

    path: Optional[str] = None
    before: Optional[str] = None
    content: Optional[str] = None

    kind: ClassVar[ActionKind] = ActionKind.MODIFY
    # A blank ``before`` is captured but unusable; the matcher reports it
    # as an empty patch block at execution time.
    _required: ClassVar[Tuple[str, ...]] = ("path", "before", "content")
    _non_empty: ClassVar[Tuple[str, ...]] = ("path",)

    @property
    def target(self) -> str:
        return self.path or ""


@dataclass(frozen=True)
class CreateAction(Action):
    """Write ``content`` to ``path``, creating or overwriting it."""

    path: Optional[str] = None
    content: Optional[str] = None

    kind: ClassVar[ActionKind] = ActionKind.CREATE
    _required: ClassVar[Tuple[str, ...]] = ("path", "content")
    _non_empty: ClassVar[Tuple[str, ...]] = ("path",)

    @property
    def target(self) -> str:
        return self.path or ""


@dataclass(frozen=True)
class DeleteAction(Action):
    """Remove the file at ``path``."""

    path: Optional[str] = None

    kind: ClassVar[ActionKind] = ActionKind.DELETE
    _required: ClassVar[Tuple[str, ...]] = ("path",)
    _non_empty: ClassVar[Tuple[str, ...]] = ("path",)

    @property
    def target(self) -> str:
        return self.path or ""


@dataclass(frozen=True)
class ShellAction(Action):
    """Submit ``command`` to an interactive terminal."""

    command: Optional[str] = None

    kind: ClassVar[ActionKind] = ActionKind.SHELL
    _required: ClassVar[Tuple[str, ...]] = ("command",)
    _non_empty: ClassVar[Tuple[str, ...]] = ("command",)

    @property
    def target(self) -> str:
        return self.command or ""


@dataclass(frozen=True)
class FetchAction(Action):
    """Open ``url`` with the host's external handler."""

    url: Optional[str] = None

    kind: ClassVar[ActionKind] = ActionKind.FETCH
    _required: ClassVar[Tuple[str, ...]] = ("url",)
    _non_empty: ClassVar[Tuple[str, ...]] = ("url",)

    @property
    def target(self) -> str:
        return self.url or ""


ACTION_TYPES: Dict[ActionKind, Type[Action]] = {
    ActionKind.MODIFY: ModifyAction,
    ActionKind.CREATE: CreateAction,
    ActionKind.DELETE: DeleteAction,
    ActionKind.SHELL: ShellAction,
    ActionKind.FETCH: FetchAction,
}


def build_action(kind: ActionKind, action_id: Optional[ActionId] = None, **values: Any) -> Action:
    """Construct the variant for ``kind`` from field values.

    Unknown field names are ignored so a parser can pass everything it
    captured for a block.

    Raises:
        IncompleteActionError: If a required field is missing.
    """
    cls = ACTION_TYPES[kind]
    accepted = {f.name for f in fields(cls)} - {"id"}
    kwargs = {k: v for k, v in values.items() if k in accepted}
    return cls(id=action_id or generate_action_id(), **kwargs)


def action_from_dict(data: Dict[str, Any]) -> Action:
    """Create an action from a dictionary produced by ``Action.to_dict``."""
    kind = ActionKind.lookup(str(data.get("kind", "")))
    if kind is None:
        raise ValueError(f"Unknown action kind: {data.get('kind')!r}")
    values = {k: v for k, v in data.items() if k not in ("id", "kind")}
    return build_action(kind, action_id=data.get("id"), **values)
