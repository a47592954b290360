"""
Authentication dependencies for FastAPI.

Security Note:
- Session tokens are read from the Authorization header (preferred) or the
  session cookie set by the portal front end
- Never log tokens or full request URLs; always use request.url.path
"""

from typing import Optional

import jwt
from fastapi import HTTPException, Request, status

from ...config import get_config
from ...database import session
from ...models.iam import User
from ...security import SecurityAuditLogger, SecurityEventType
from .jwt import decode_jwt_token


def extract_session_token(request: Request) -> Optional[str]:
  """Bearer token from the Authorization header, else the session cookie."""
  authorization = request.headers.get("authorization")
  if authorization and authorization.startswith("Bearer "):
    token = authorization[7:].strip()
    if token:
      return token

  cookie = request.cookies.get(get_config().SESSION_COOKIE_NAME)
  return cookie or None


def _unauthorized(detail: str) -> HTTPException:
  return HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail=detail,
    headers={"WWW-Authenticate": "Bearer"},
  )


async def get_current_user(request: Request) -> User:
  """
  Get the authenticated user, raising an exception if authentication fails.

  Args:
      request: FastAPI request object for extracting client info

  Returns:
      User: The authenticated user.

  Raises:
      HTTPException: 401 if no valid session is provided.
  """
  client_ip = request.client.host if request.client else None
  user_agent = request.headers.get("user-agent")
  endpoint = str(request.url.path)

  token = extract_session_token(request)
  if not token:
    SecurityAuditLogger.log_auth_failure(
      reason="No authentication provided",
      ip_address=client_ip,
      user_agent=user_agent,
      endpoint=endpoint,
    )
    raise _unauthorized("Authentication required")

  try:
    payload = decode_jwt_token(token)
  except jwt.ExpiredSignatureError:
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_TOKEN_EXPIRED,
      ip_address=client_ip,
      user_agent=user_agent,
      endpoint=endpoint,
      details={"token_type": "jwt"},
      risk_level="low",
    )
    raise _unauthorized("Invalid or expired token")
  except jwt.InvalidTokenError:
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_TOKEN_INVALID,
      ip_address=client_ip,
      user_agent=user_agent,
      endpoint=endpoint,
      details={"token_type": "jwt"},
      risk_level="high",
    )
    raise _unauthorized("Invalid or expired token")

  user_id = payload.get("user_id")
  user = User.get_by_id(user_id, session()) if user_id else None
  if user is None or not bool(user.is_active):
    SecurityAuditLogger.log_auth_failure(
      reason="Unknown or inactive user",
      user_id=user_id,
      ip_address=client_ip,
      user_agent=user_agent,
      endpoint=endpoint,
    )
    raise _unauthorized("Invalid or expired token")

  SecurityAuditLogger.log_auth_success(
    user_id=str(user.id),
    ip_address=client_ip,
    user_agent=user_agent,
  )
  request.state.user_id = user.id
  return user
