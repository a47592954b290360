"""Authentication module initialization."""

from .dependencies import extract_session_token, get_current_user
from .jwt import create_jwt_token, verify_jwt_token

__all__ = [
  "create_jwt_token",
  "extract_session_token",
  "get_current_user",
  "verify_jwt_token",
]
