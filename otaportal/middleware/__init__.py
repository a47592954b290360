"""
Portal middleware package.

Authentication dependencies, per-request database sessions and structured
request logging.
"""

from .auth import get_current_user
from .database import DatabaseSessionMiddleware
from .logging import StructuredLoggingMiddleware

__all__ = [
  "DatabaseSessionMiddleware",
  "StructuredLoggingMiddleware",
  "get_current_user",
]
