"""JWT session token utilities.

Sessions are issued by the portal's identity provider as HS256 tokens
carrying ``user_id``, ``iss``, ``aud``, ``iat`` and ``exp``. This module is
shared between the auth dependency and the admin CLI, which mints tokens
for local development.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from ...config import get_config
from ...config.logging import get_logger
from ...exceptions import ConfigurationError

logger = get_logger("otaportal.auth.jwt")

JWT_ALGORITHM = "HS256"


class JWTConfig:
  """JWT configuration management."""

  @staticmethod
  def get_jwt_secret() -> str:
    """Get JWT secret key."""
    secret = get_config().JWT_SECRET_KEY
    if not secret:
      raise ConfigurationError("JWT_SECRET_KEY", "JWT secret key is not set")
    return secret


def decode_jwt_token(token: str) -> Dict[str, Any]:
  """Decode and fully validate a token.

  Raises:
    jwt.ExpiredSignatureError: The token has expired
    jwt.InvalidTokenError: Signature, issuer, audience or format is wrong
  """
  config = get_config()
  return jwt.decode(
    token,
    JWTConfig.get_jwt_secret(),
    algorithms=[JWT_ALGORITHM],
    issuer=config.JWT_ISSUER,
    audience=config.JWT_AUDIENCE,
    options={"require": ["exp", "iss", "aud"]},
  )


def verify_jwt_token(token: str) -> Optional[str]:
  """Verify a JWT token and return the user_id if valid.

  Args:
    token: The JWT token to verify

  Returns:
    The user_id if token is valid, None otherwise
  """
  try:
    payload = decode_jwt_token(token)
  except jwt.ExpiredSignatureError:
    logger.info("JWT token verification failed: token expired")
    return None
  except jwt.InvalidTokenError as e:
    logger.info(f"JWT token verification failed: {type(e).__name__}")
    return None

  user_id = payload.get("user_id")
  if not user_id or not isinstance(user_id, str):
    logger.info("JWT token verification failed: missing user_id claim")
    return None
  return user_id


def create_jwt_token(user_id: str, expires_in_hours: Optional[int] = None) -> str:
  """Create a session token for a user.

  Args:
    user_id: The user ID to encode in the token
    expires_in_hours: Lifetime; defaults to JWT_EXPIRY_HOURS

  Returns:
    The encoded JWT token
  """
  config = get_config()
  now = datetime.now(timezone.utc)
  hours = config.JWT_EXPIRY_HOURS if expires_in_hours is None else expires_in_hours

  payload = {
    "user_id": user_id,
    "jti": str(uuid.uuid4()),
    "exp": now + timedelta(hours=hours),
    "iat": now,
    "iss": config.JWT_ISSUER,
    "aud": config.JWT_AUDIENCE,
  }
  return jwt.encode(payload, JWTConfig.get_jwt_secret(), algorithm=JWT_ALGORITHM)
