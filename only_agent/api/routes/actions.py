"""
Action queue endpoints.

Provides REST endpoints for:
- Submitting an agent response and queuing its actions
- Listing pending actions
- Approving one action, or every bulk-approvable action
- Discarding an action
- Building (and optionally copying) the context prompt
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from only_agent.runtime.errors import ParseError, UnknownActionError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["actions"])


# =============================================================================
# Pydantic Models
# =============================================================================


class SubmitResponseRequest(BaseModel):
    """Request body for submitting an agent response."""

    text: str = Field(..., description="Full agent response text")


class PromptRequest(BaseModel):
    """Request body for building the context prompt."""

    instruction: str = Field("", description="The user's request")
    copy_to_clipboard: bool = Field(
        False,
        alias="copy",
        description="Also copy the prompt to the host clipboard",
    )


class ActionModel(BaseModel):
    """A queued action. Fields beyond id/kind depend on the kind."""

    id: str
    kind: str
    path: Optional[str] = None
    before: Optional[str] = None
    content: Optional[str] = None
    command: Optional[str] = None
    url: Optional[str] = None


class SkippedBlockModel(BaseModel):
    """A tool-call block that did not become an action."""

    kind: str
    line: int
    reason: str
    missing: List[str] = Field(default_factory=list)


class PendingActionsResponse(BaseModel):
    """Response for listing pending actions."""

    actions: List[ActionModel] = Field(default_factory=list)
    count: int = Field(0, description="Number of pending actions")
    can_approve_all: bool = Field(False, description="Whether approve-all would run anything")


class SubmitResponseResponse(BaseModel):
    """Response for a submitted agent response."""

    queued: List[ActionModel] = Field(default_factory=list)
    skipped: List[SkippedBlockModel] = Field(default_factory=list)
    pending_count: int = 0


class ExecutionResultModel(BaseModel):
    """Outcome of executing one action."""

    action_id: str
    kind: str
    success: bool
    message: str = ""
    error_code: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class ApproveAllResponse(BaseModel):
    """Response for approve-all."""

    results: List[ExecutionResultModel] = Field(default_factory=list)
    skipped: int = Field(0, description="Actions left queued for individual approval")
    skipped_ids: List[str] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0


class DiscardResponse(BaseModel):
    """Response for discarding an action."""

    discarded: ActionModel


class PromptResponse(BaseModel):
    """Response for prompt building."""

    prompt: str
    copied: bool = False


# =============================================================================
# Controller Access
# =============================================================================


def _get_controller():
    """Get the global ApprovalController instance."""
    # Import here to avoid circular imports
    from ..server import get_controller

    return get_controller()


def _unknown_action(e: UnknownActionError) -> HTTPException:
    return HTTPException(status_code=404, detail=e.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/actions", response_model=PendingActionsResponse)
async def list_actions():
    """List pending actions in queue order."""
    controller = _get_controller()
    pending = controller.pending
    return PendingActionsResponse(
        actions=[ActionModel(**a.to_dict()) for a in pending],
        count=len(pending),
        can_approve_all=controller.can_approve_all,
    )


@router.post("/responses", response_model=SubmitResponseResponse)
async def submit_response(request: SubmitResponseRequest):
    """Parse an agent response and queue its actions.

    Returns 422 with ``parse_error`` when no action was recognized.
    """
    controller = _get_controller()
    try:
        result = controller.submit_response(request.text)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    return SubmitResponseResponse(
        queued=[ActionModel(**a.to_dict()) for a in result.actions],
        skipped=[SkippedBlockModel(**s.to_dict()) for s in result.skipped],
        pending_count=len(controller.pending),
    )


# Registered before /actions/{action_id}/approve so "approve-all" is not
# captured as an id.
@router.post("/actions/approve-all", response_model=ApproveAllResponse)
async def approve_all():
    """Execute every bulk-approvable action; SHELL actions stay queued."""
    summary = _get_controller().approve_all()
    return ApproveAllResponse(**summary.to_dict())


@router.post("/actions/{action_id}/approve", response_model=ExecutionResultModel)
async def approve_action(action_id: str):
    """Execute one action.

    Execution failures are reported in the body with ``success: false``;
    only an unknown id is an HTTP error.
    """
    try:
        result = _get_controller().approve(action_id)
    except UnknownActionError as e:
        raise _unknown_action(e)
    return ExecutionResultModel(**result.to_dict())


@router.delete("/actions/{action_id}", response_model=DiscardResponse)
async def discard_action(action_id: str):
    """Drop an action without executing it."""
    try:
        action = _get_controller().discard(action_id)
    except UnknownActionError as e:
        raise _unknown_action(e)
    return DiscardResponse(discarded=ActionModel(**action.to_dict()))


@router.post("/prompt", response_model=PromptResponse)
async def build_prompt(request: PromptRequest):
    """Build the context prompt, copying it to the clipboard on request."""
    controller = _get_controller()
    prompt = controller.build_prompt(request.instruction)
    copied = False
    if request.copy_to_clipboard:
        copied = controller.copy_text(prompt)
        if not copied:
            logger.warning("Prompt requested with copy=true but no clipboard is available")
    return PromptResponse(prompt=prompt, copied=copied)
