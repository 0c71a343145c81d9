"""
errors.py - Error taxonomy for action parsing and execution.

Every failure the engine can report is an ActionError subclass with a stable
``code`` used by the CLI and the HTTP API:

- ParseError: a response produced zero actions (reported once per batch)
- IncompleteActionError: a recognized kind is missing a required field
- PatchNotFoundError / EmptyPatchBlockError: MODIFY could not locate its span
- NoWorkspaceError: no project root is configured
- ActionIOError / FileReadError: read/write/delete failures from the host
- InvalidURLError: FETCH target is not a URL
- UnknownActionError: approval named an id that is not queued

None of these are process-fatal. Execution-level errors are attached to the
failing action and never abort sibling actions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class ActionError(Exception):
    """Base class for all engine errors."""

    code = "action_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {"error": self.code, "message": self.message}


class IncompleteActionError(ActionError):
    """A recognized action kind is missing one or more required fields."""

    code = "incomplete_action"

    def __init__(self, kind: str, missing: Sequence[str]):
        self.kind = kind
        self.missing = list(missing)
        super().__init__(f"{kind} action is missing required field(s): {', '.join(self.missing)}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind
        data["missing"] = self.missing
        return data


class ParseError(ActionError):
    """A response yielded no actions at all.

    Attributes:
        skipped: Blocks that were seen but dropped (unknown kind or
            incomplete fields), so the caller can explain why.
    """

    code = "parse_error"

    def __init__(self, message: str = "No actions recognized", skipped: Optional[List[Any]] = None):
        super().__init__(message)
        self.skipped = list(skipped or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["skipped"] = [s.to_dict() if hasattr(s, "to_dict") else s for s in self.skipped]
        return data


class PatchNotFoundError(ActionError):
    """The BEFORE snippet of a MODIFY action was not found in the target file."""

    code = "patch_not_found"

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Could not locate the BEFORE block in {path}")


class EmptyPatchBlockError(PatchNotFoundError):
    """The BEFORE snippet is empty after trimming whitespace."""

    code = "empty_patch_block"

    def __init__(self, path: str = ""):
        where = f" for {path}" if path else ""
        super().__init__(path, f"BEFORE block is empty{where}")


class NoWorkspaceError(ActionError):
    """No project root is available to resolve file paths against."""

    code = "no_workspace"

    def __init__(self, message: str = "No workspace root is configured"):
        super().__init__(message)


class ActionIOError(ActionError):
    """A host read/write/delete/open call failed."""

    code = "io_error"

    def __init__(self, operation: str, path: str, reason: str):
        self.operation = operation
        self.path = path
        self.reason = reason
        super().__init__(f"{operation} failed for {path}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["operation"] = self.operation
        data["path"] = self.path
        return data


class FileReadError(ActionIOError):
    """The target file of a MODIFY action could not be opened or decoded."""

    code = "file_read_error"

    def __init__(self, path: str, reason: str):
        super().__init__("read", path, reason)


class InvalidURLError(ActionError):
    """A FETCH target is not syntactically a URL."""

    code = "invalid_url"

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Not a valid URL: {url!r}")


class UnknownActionError(ActionError):
    """No pending action has the given id."""

    code = "unknown_action"

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"No pending action with id {action_id!r}")
