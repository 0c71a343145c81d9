"""
controller.py - Approval flow between the pending queue and the executor.

The controller owns the PendingActionStore and is the single entry point for
hosts (CLI, HTTP API, editor plugins):

- submit_response: parse agent text and queue the resulting actions
- approve: execute one queued action by id
- approve_all: execute every bulk-approvable action in queue order
- discard: drop a queued action without executing it

An approved action leaves the queue before it executes, whatever the outcome.
"approve all" never runs SHELL actions; they stay queued for individual
approval.

Progress is reported through an optional ``on_event(event_type, payload)``
callback. Event types:

    action_queued      payload: action dict
    action_completed   payload: execution result dict
    action_failed      payload: execution result dict
    action_discarded   payload: action dict
    message            payload: {"text": ...}
    error              payload: error dict

Usage:
    from only_agent.runtime import ApprovalController, LocalWorkspace

    controller = ApprovalController(LocalWorkspace("/path/to/project"))
    controller.submit_response(agent_text)
    summary = controller.approve_all()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from only_agent.config.runtime_config import AgentSettings

from .action_parser import ParseResult, parse_response
from .actions import Action, ActionId, ActionKind
from .errors import ParseError, UnknownActionError
from .executor import ActionExecutor, ExecutionResult
from .prompt_builder import build_project_structure, build_prompt
from .store import PendingActionStore
from .workspace import Workspace

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Dict[str, Any]], None]

EVENT_ACTION_QUEUED = "action_queued"
EVENT_ACTION_COMPLETED = "action_completed"
EVENT_ACTION_FAILED = "action_failed"
EVENT_ACTION_DISCARDED = "action_discarded"
EVENT_MESSAGE = "message"
EVENT_ERROR = "error"


@dataclass
class BulkApprovalResult:
    """Outcome of "approve all".

    Attributes:
        results: One result per executed action, in execution order.
        skipped_ids: Actions left queued because their kind is excluded
            from bulk approval.
    """

    results: List[ExecutionResult] = field(default_factory=list)
    skipped_ids: List[ActionId] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.skipped_ids)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "skipped": self.skipped,
            "skipped_ids": self.skipped_ids,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


class ApprovalController:
    """Queue agent actions and execute them on approval.

    Args:
        workspace: Host collaborator used for prompt context and execution.
        settings: Resolved settings; defaults apply when omitted.
        on_event: Optional callback receiving (event_type, payload).
    """

    def __init__(
        self,
        workspace: Workspace,
        settings: Optional[AgentSettings] = None,
        on_event: Optional[EventCallback] = None,
    ):
        self.workspace = workspace
        self.settings = settings or AgentSettings()
        self.store = PendingActionStore()
        self.executor = ActionExecutor(workspace)
        self._on_event = on_event
        self._bulk_excluded = self._resolve_bulk_excluded(self.settings.bulk_excluded_kinds)

    @staticmethod
    def _resolve_bulk_excluded(names: List[str]) -> FrozenSet[ActionKind]:
        kinds = {ActionKind.SHELL}
        for name in names:
            kind = ActionKind.lookup(name)
            if kind is None:
                logger.warning("Ignoring unknown kind %r in bulk_excluded_kinds", name)
                continue
            kinds.add(kind)
        return frozenset(kinds)

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self._on_event is not None:
            self._on_event(event_type, payload)

    # -------------------------------------------------------------------------
    # Queue state
    # -------------------------------------------------------------------------

    @property
    def pending(self) -> List[Action]:
        """Queued actions in display order."""
        return self.store.snapshot()

    @property
    def has_pending(self) -> bool:
        return self.store.has_pending()

    @property
    def can_approve_all(self) -> bool:
        """True if "approve all" would execute at least one action."""
        return self.store.has_bulk_approvable(self._bulk_excluded)

    @property
    def bulk_excluded_kinds(self) -> FrozenSet[ActionKind]:
        return self._bulk_excluded

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def submit_response(self, text: str) -> ParseResult:
        """Parse an agent response and queue its actions.

        Raises:
            ParseError: If the response contains no usable action. The queue
                is left untouched in that case.
        """
        try:
            result = parse_response(text)
        except ParseError as e:
            logger.warning("Rejected agent response: %s", e.message)
            self._emit(EVENT_ERROR, e.to_dict())
            raise

        if self.settings.replace_on_parse and self.store.has_pending():
            logger.info("Replacing %d pending action(s)", len(self.store))
            self.store.clear()

        for action in result.actions:
            self.store.add(action)
            self._emit(EVENT_ACTION_QUEUED, action.to_dict())

        logger.info("Queued %d action(s); %d pending", len(result.actions), len(self.store))
        return result

    def approve(self, action_id: ActionId) -> ExecutionResult:
        """Execute one queued action.

        The action is removed from the queue first, so a failed action is
        not retried by a later "approve all".

        Raises:
            UnknownActionError: If no queued action has ``action_id``.
        """
        action = self.store.remove(action_id)
        if action is None:
            raise UnknownActionError(action_id)
        return self._execute(action)

    def approve_all(self) -> BulkApprovalResult:
        """Execute every bulk-approvable action in insertion order.

        Actions of excluded kinds (always SHELL) are left queued. Each action
        is executed against the file state left by the ones before it.
        """
        summary = BulkApprovalResult()
        for action in self.store.snapshot():
            if action.kind in self._bulk_excluded:
                summary.skipped_ids.append(action.id)
                continue
            self.store.remove(action.id)
            summary.results.append(self._execute(action))

        logger.info(
            "Approve all: %d succeeded, %d failed, %d left for manual approval",
            summary.succeeded,
            summary.failed,
            summary.skipped,
        )
        if summary.skipped:
            self._emit(
                EVENT_MESSAGE,
                {"text": f"{summary.skipped} action(s) need individual approval"},
            )
        return summary

    def discard(self, action_id: ActionId) -> Action:
        """Remove a queued action without executing it.

        Raises:
            UnknownActionError: If no queued action has ``action_id``.
        """
        action = self.store.remove(action_id)
        if action is None:
            raise UnknownActionError(action_id)
        logger.info("Discarded %s %s", action.kind.value, action.id)
        self._emit(EVENT_ACTION_DISCARDED, action.to_dict())
        return action

    def _execute(self, action: Action) -> ExecutionResult:
        result = self.executor.execute(action)
        event = EVENT_ACTION_COMPLETED if result.success else EVENT_ACTION_FAILED
        self._emit(event, result.to_dict())
        return result

    # -------------------------------------------------------------------------
    # Prompt
    # -------------------------------------------------------------------------

    def build_prompt(self, instruction: str) -> str:
        """Build the context prompt for ``instruction``."""
        structure = build_project_structure(
            self.workspace,
            self.settings.exclude_patterns,
            self.settings.max_listed_files,
        )
        return build_prompt(instruction, structure, self.workspace.list_open_documents())

    def copy_prompt(self, instruction: str) -> bool:
        """Build the prompt and copy it to the clipboard.

        Returns:
            True if the clipboard accepted the text.
        """
        return self.copy_text(self.build_prompt(instruction))

    def copy_text(self, text: str) -> bool:
        """Copy already-built prompt text and report the outcome as a message."""
        copied = self.workspace.copy_to_clipboard(text)
        if copied:
            self._emit(EVENT_MESSAGE, {"text": "Prompt copied to clipboard"})
        else:
            self._emit(EVENT_MESSAGE, {"text": "Clipboard unavailable; prompt not copied"})
        return copied
