"""
Runtime package: parsing, queuing and executing agent actions.

Modules:
- actions: typed action records
- action_parser: TOOL_CALL block extraction
- patch_matcher: locate a BEFORE snippet in a file
- store: ordered pending queue
- executor: perform one action against a Workspace
- controller: approval flow and events
- workspace: host collaborators (file system, terminal, browser, clipboard)
- prompt_builder: context prompt for the agent
"""

from .action_parser import ParseResult, SkippedBlock, iter_actions, parse_response
from .actions import (
    Action,
    ActionKind,
    CreateAction,
    DeleteAction,
    FetchAction,
    ModifyAction,
    ShellAction,
    action_from_dict,
    build_action,
)
from .controller import ApprovalController, BulkApprovalResult
from .errors import ActionError, ParseError
from .executor import ActionExecutor, ExecutionResult
from .patch_matcher import PatchMatch, locate
from .store import PendingActionStore
from .workspace import LocalWorkspace, Workspace

__all__ = [
    "Action",
    "ActionError",
    "ActionExecutor",
    "ActionKind",
    "ApprovalController",
    "BulkApprovalResult",
    "CreateAction",
    "DeleteAction",
    "ExecutionResult",
    "FetchAction",
    "LocalWorkspace",
    "ModifyAction",
    "ParseError",
    "ParseResult",
    "PatchMatch",
    "PendingActionStore",
    "ShellAction",
    "SkippedBlock",
    "Workspace",
    "action_from_dict",
    "build_action",
    "iter_actions",
    "locate",
    "parse_response",
]
