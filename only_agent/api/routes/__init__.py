"""
API route modules.

Routers:
- actions_router: action queue endpoints (/actions, /responses, /prompt)
"""

from .actions import router as actions_router

__all__ = ["actions_router"]
