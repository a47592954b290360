"""Utility helpers shared across the portal."""

from .ulid import (
  MEMBER_PREFIX,
  SPACE_PREFIX,
  UPLOAD_PREFIX,
  USER_PREFIX,
  generate_prefixed_ulid,
  is_prefixed_ulid,
  parse_ulid,
)

__all__ = [
  "MEMBER_PREFIX",
  "SPACE_PREFIX",
  "UPLOAD_PREFIX",
  "USER_PREFIX",
  "generate_prefixed_ulid",
  "is_prefixed_ulid",
  "parse_ulid",
]
