"""
only-agent API - FastAPI surface over the approval controller.

    GET    /api/health                    - Health check
    GET    /api/actions                   - Pending actions
    POST   /api/responses                 - Submit an agent response
    POST   /api/actions/{id}/approve      - Approve one action
    POST   /api/actions/approve-all       - Approve all (SHELL excluded)
    DELETE /api/actions/{id}              - Discard an action
    POST   /api/prompt                    - Build/copy the context prompt
"""

from .server import build_controller, create_app, get_controller, set_controller

__all__ = [
    "build_controller",
    "create_app",
    "get_controller",
    "set_controller",
]
