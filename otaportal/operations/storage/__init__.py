"""Object-store key construction and validation."""

from .keys import (
  ParsedKey,
  belongs_to_space,
  format_file_size,
  generate_key,
  is_allowed_file_type,
  parse_key,
  sanitize_filename,
  space_prefix,
)

__all__ = [
  "ParsedKey",
  "belongs_to_space",
  "format_file_size",
  "generate_key",
  "is_allowed_file_type",
  "parse_key",
  "sanitize_filename",
  "space_prefix",
]
