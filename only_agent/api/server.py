"""
FastAPI REST API server for the action queue.

Exposes the ApprovalController to a browser panel or editor plugin: the
panel posts agent responses, lists pending actions and approves them.

Usage:
    # Run standalone
    python -m only_agent.api.server --root /path/to/project

    # Or via factory
    from only_agent.api import create_app
    app = create_app(controller)
    uvicorn.run(app, port=8765)

API Structure:
    GET    /api/health                    - Health check
    GET    /api/actions                   - Pending actions
    POST   /api/responses                 - Submit an agent response
    POST   /api/actions/{id}/approve      - Approve one action
    POST   /api/actions/approve-all       - Approve all (SHELL excluded)
    DELETE /api/actions/{id}              - Discard an action
    POST   /api/prompt                    - Build/copy the context prompt
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from only_agent.config.runtime_config import AgentSettings, get_settings
from only_agent.runtime.controller import ApprovalController
from only_agent.runtime.workspace import LocalWorkspace

logger = logging.getLogger(__name__)

_controller: Optional[ApprovalController] = None

# Recent controller events, newest last, for the health endpoint.
_recent_events: List[Tuple[str, Dict[str, Any]]] = []
MAX_RECENT_EVENTS = 50


def _record_event(event_type: str, payload: Dict[str, Any]) -> None:
    _recent_events.append((event_type, payload))
    del _recent_events[:-MAX_RECENT_EVENTS]


def build_controller(settings: Optional[AgentSettings] = None) -> ApprovalController:
    """Create a controller over a LocalWorkspace from settings."""
    settings = settings or get_settings()
    workspace = LocalWorkspace(
        settings.workspace_root,
        exclude_patterns=settings.exclude_patterns,
    )
    return ApprovalController(workspace, settings=settings, on_event=_record_event)


def get_controller() -> ApprovalController:
    """Get the global ApprovalController instance."""
    global _controller
    if _controller is None:
        _controller = build_controller()
    return _controller


def set_controller(controller: Optional[ApprovalController]) -> None:
    """Replace the global controller (None resets it)."""
    global _controller
    _controller = controller
    _recent_events.clear()


# =============================================================================
# FastAPI Application Factory
# =============================================================================


def create_app(
    controller: Optional[ApprovalController] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        controller: Controller to serve. Built from settings on first use
            when omitted.
        enable_cors: Whether to enable CORS middleware.

    Returns:
        Configured FastAPI application.
    """
    if controller is not None:
        set_controller(controller)

    app = FastAPI(
        title="only-agent API",
        description="Queue, review and apply actions proposed by a chat agent.",
        version="0.1.0",
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    from .routes import actions_router

    app.include_router(actions_router, prefix="/api")

    # -------------------------------------------------------------------------
    # Request Logging Middleware
    # -------------------------------------------------------------------------

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info(
            "%s %s %s %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )
        return response

    @app.get("/api/health")
    async def health():
        """Health check with queue and workspace status."""
        ctrl = get_controller()
        root = ctrl.workspace.root
        return {
            "status": "ok",
            "workspace_root": str(root) if root is not None else None,
            "pending": len(ctrl.pending),
            "can_approve_all": ctrl.can_approve_all,
            "recent_events": [
                {"type": event_type, "payload": payload}
                for event_type, payload in _recent_events[-10:]
            ],
        }

    return app


# =============================================================================
# Main Entry Point
# =============================================================================


def main():
    """Run the API server."""
    import argparse
    from pathlib import Path

    import uvicorn

    settings = get_settings()

    parser = argparse.ArgumentParser(description="only-agent API server")
    parser.add_argument("--root", type=Path, default=None, help="Project root (overrides config)")
    parser.add_argument("--host", default=settings.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    parser.add_argument("--no-cors", action="store_true", help="Disable CORS")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if args.root is not None:
        settings.workspace_root = args.root
    app = create_app(build_controller(settings), enable_cors=not args.no_cors)

    print(f"Starting only-agent API server at http://{args.host}:{args.port}")
    print(f"  Workspace: {settings.workspace_root or '(none)'}")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
