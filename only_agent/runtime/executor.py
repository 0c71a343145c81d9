"""
executor.py - Perform one approved action against a Workspace.

Each action is executed in isolation and always produces an ExecutionResult;
errors are captured per action and never propagate to the caller, so one
failure cannot abort or roll back its siblings.

MODIFY re-reads the target file on every call and locates the BEFORE block
against that current text. The replacement takes the file's line ending
(CRLF files stay CRLF). SHELL is fire-and-forget: success means the
command was submitted, not that it succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from .actions import (
    Action,
    ActionId,
    ActionKind,
    CreateAction,
    DeleteAction,
    FetchAction,
    ModifyAction,
    ShellAction,
)
from .errors import (
    ActionError,
    ActionIOError,
    EmptyPatchBlockError,
    FileReadError,
    InvalidURLError,
    NoWorkspaceError,
    PatchNotFoundError,
)
from .patch_matcher import locate
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of executing a single action.

    Attributes:
        action_id: Id of the executed action.
        kind: Action kind.
        success: Whether the side effect was performed.
        message: Human-readable summary.
        error_code: ActionError code when success is False.
        details: Extra data (e.g., match strategy and line span for MODIFY).
    """

    action_id: ActionId
    kind: ActionKind
    success: bool
    message: str = ""
    error_code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "action_id": self.action_id,
            "kind": self.kind.value,
            "success": self.success,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


def is_valid_url(url: str) -> bool:
    """True if ``url`` has a scheme and a network location (or is file:)."""
    if not url or any(c.isspace() for c in url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.scheme:
        return False
    if parsed.scheme == "file":
        return bool(parsed.path)
    return bool(parsed.netloc)


def file_newline(text: str) -> str:
    """Line ending used by ``text``, judged from its first line break."""
    index = text.find("\n")
    if index > 0 and text[index - 1] == "\r":
        return "\r\n"
    return "\n"


class ActionExecutor:
    """Execute actions through a Workspace."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self._handlers: Dict[ActionKind, Callable[[Any], ExecutionResult]] = {
            ActionKind.MODIFY: self._execute_modify,
            ActionKind.CREATE: self._execute_create,
            ActionKind.DELETE: self._execute_delete,
            ActionKind.SHELL: self._execute_shell,
            ActionKind.FETCH: self._execute_fetch,
        }

    def execute(self, action: Action) -> ExecutionResult:
        """Execute one action and report the outcome.

        Never raises for action-level failures; they come back as a result
        with ``success=False`` and the error's code.
        """
        try:
            result = self._handlers[action.kind](action)
        except ActionError as e:
            logger.warning("%s %s failed: %s", action.kind.value, action.id, e.message)
            return ExecutionResult(
                action_id=action.id,
                kind=action.kind,
                success=False,
                message=e.message,
                error_code=e.code,
            )
        except (OSError, ValueError) as e:
            # ValueError: hosts reject values such as "embedded null byte"
            reason = getattr(e, "strerror", None) or str(e)
            error = ActionIOError(action.kind.value.lower(), action.target, reason)
            logger.warning("%s %s failed: %s", action.kind.value, action.id, error.message)
            return ExecutionResult(
                action_id=action.id,
                kind=action.kind,
                success=False,
                message=error.message,
                error_code=error.code,
            )

        logger.info("%s %s: %s", action.kind.value, action.id, result.message)
        return result

    # -------------------------------------------------------------------------
    # Per-kind handlers
    # -------------------------------------------------------------------------

    def _require_root(self) -> None:
        if self.workspace.root is None:
            raise NoWorkspaceError()

    def _execute_modify(self, action: ModifyAction) -> ExecutionResult:
        self._require_root()
        try:
            text = self.workspace.read_file(action.path)
        except (OSError, UnicodeDecodeError) as e:
            raise FileReadError(action.path, str(e)) from e

        try:
            match = locate(text, action.before)
        except EmptyPatchBlockError:
            # locate() does not know the path
            raise EmptyPatchBlockError(action.path) from None
        if match is None:
            raise PatchNotFoundError(action.path)

        content = action.content
        if file_newline(text) == "\r\n":
            content = content.replace("\r\n", "\n").replace("\n", "\r\n")
        self.workspace.replace_range(action.path, match.start, match.end, content)
        return ExecutionResult(
            action_id=action.id,
            kind=action.kind,
            success=True,
            message=(
                f"Modified {action.path} lines {match.first_line + 1}-{match.last_line + 1}"
                f" ({match.strategy} match)"
            ),
            details={
                "path": action.path,
                "strategy": match.strategy,
                "start": match.start,
                "end": match.end,
                "first_line": match.first_line + 1,
                "last_line": match.last_line + 1,
            },
        )

    def _execute_create(self, action: CreateAction) -> ExecutionResult:
        self._require_root()
        content = action.content or ""
        self.workspace.write_file(action.path, content)
        return ExecutionResult(
            action_id=action.id,
            kind=action.kind,
            success=True,
            message=f"Wrote {action.path} ({len(content)} chars)",
            details={"path": action.path},
        )

    def _execute_delete(self, action: DeleteAction) -> ExecutionResult:
        self._require_root()
        try:
            self.workspace.delete_file(action.path)
        except OSError as e:
            raise ActionIOError("delete", action.path, e.strerror or str(e)) from e
        return ExecutionResult(
            action_id=action.id,
            kind=action.kind,
            success=True,
            message=f"Deleted {action.path}",
            details={"path": action.path},
        )

    def _execute_shell(self, action: ShellAction) -> ExecutionResult:
        self.workspace.run_in_terminal(action.command)
        return ExecutionResult(
            action_id=action.id,
            kind=action.kind,
            success=True,
            message=f"Submitted command: {action.command}",
            details={"command": action.command},
        )

    def _execute_fetch(self, action: FetchAction) -> ExecutionResult:
        if not is_valid_url(action.url):
            raise InvalidURLError(action.url)
        self.workspace.open_external(action.url)
        return ExecutionResult(
            action_id=action.id,
            kind=action.kind,
            success=True,
            message=f"Opened {action.url}",
            details={"url": action.url},
        )
