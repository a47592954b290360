"""Database session cleanup middleware."""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..database import activate_request_scope, deactivate_request_scope, session
from ..logger import logger


class DatabaseSessionMiddleware(BaseHTTPMiddleware):
  """Binds one scoped session to each request and removes it afterwards."""

  async def dispatch(self, request: Request, call_next: Callable) -> Response:
    scope_token = None
    try:
      scope_token = activate_request_scope()
      return await call_next(request)
    finally:
      try:
        session.remove()
      except Exception as e:
        # The response is already built; cleanup failure must not replace it
        logger.warning(f"Database session cleanup failed: {e}")
      finally:
        deactivate_request_scope(scope_token)
