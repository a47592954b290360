"""
API routers.
"""

from .spaces import router as spaces_router
from .status import router as status_router

__all__ = ["spaces_router", "status_router"]
