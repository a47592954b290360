"""
Logging middleware for structured API request logging.

Every request gets an ``X-Request-ID``; the id is stored on
``request.state`` so error handlers can echo it back.
"""

import time
import uuid
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..logger import api_logger, log_api, log_app_error

logger = api_logger

REQUEST_ID_HEADER = "X-Request-ID"

# Sensitive query parameters that should always be redacted in logs
SENSITIVE_QUERY_PARAMS = {
  "token",
  "authorization",
  "auth",
  "password",
  "secret",
  "jwt",
  "bearer",
  "access_token",
  "refresh_token",
  "session",
  "sessionid",
  "session_id",
  "x-amz-signature",
  "x-amz-credential",
  "x-amz-security-token",
}


def redact_sensitive_query_params(query_string: str) -> str:
  """
  Redact sensitive query parameters from a query string for safe logging.

  Args:
      query_string: The raw query string from a URL

  Returns:
      Query string with sensitive values replaced with REDACTED
  """
  if not query_string:
    return ""

  try:
    qs_pairs = parse_qsl(query_string, keep_blank_values=True)
  except ValueError:
    # Unparseable query strings are dropped rather than logged raw
    return ""

  redacted_pairs = [
    (k, "REDACTED" if k.lower() in SENSITIVE_QUERY_PARAMS else v) for k, v in qs_pairs
  ]
  return urlencode(redacted_pairs)


def get_safe_url_for_logging(request: Request) -> str:
  """Request path plus its redacted query string."""
  path = request.url.path
  if request.url.query:
    safe_query = redact_sensitive_query_params(str(request.url.query))
    if safe_query:
      return f"{path}?{safe_query}"
  return path


def get_request_id(request: Request) -> Optional[str]:
  return getattr(request.state, "request_id", None)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
  """
  Logs every API request with timing, status and request id.

  Health checks and docs are excluded.
  """

  def __init__(self, app, exclude_paths: Optional[list] = None):
    super().__init__(app)
    self.exclude_paths = exclude_paths or [
      "/health",
      "/favicon.ico",
      "/docs",
      "/redoc",
      "/openapi.json",
    ]

  async def dispatch(self, request: Request, call_next: Callable) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id

    if any(request.url.path.startswith(path) for path in self.exclude_paths):
      response = await call_next(request)
      response.headers[REQUEST_ID_HEADER] = request_id
      return response

    start_time = time.time()

    try:
      response = await call_next(request)
    except Exception as e:
      duration_ms = (time.time() - start_time) * 1000
      user_id = getattr(request.state, "user_id", None)

      error_category = "application"
      if isinstance(e, PermissionError):
        error_category = "authorization"
      elif isinstance(e, TimeoutError):
        error_category = "timeout"

      log_app_error(
        error=e,
        component="api_middleware",
        action="request_processing",
        error_category=error_category,
        user_id=str(user_id) if user_id else None,
        metadata={
          "method": request.method,
          "path": get_safe_url_for_logging(request),
          "duration_ms": duration_ms,
          "request_id": request_id,
        },
      )
      raise

    duration_ms = (time.time() - start_time) * 1000
    user_id = getattr(request.state, "user_id", None)
    log_api(
      method=request.method,
      path=request.url.path,
      status_code=response.status_code,
      duration_ms=duration_ms,
      user_id=str(user_id) if user_id else None,
      request_id=request_id,
    )

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
