"""Object-store key policy for space uploads.

Every uploaded object lives under its space's prefix:

  s3://{S3_BUCKET_NAME}/
    uploads/
      {space_slug}/
        {unix_millis}-{sanitized_filename}

The key layout is a persisted contract: existing rows reference keys in
this shape, so it must not change. The millisecond timestamp keeps
repeated filenames apart; two requests for the same name in the same
millisecond produce the same key, which callers treat as a retryable
conflict rather than an overwrite.
"""

import re
import time
from dataclasses import dataclass
from typing import Optional

from ...config.constants import ALLOWED_FILE_EXTENSIONS, UPLOAD_KEY_ROOT

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_REPEATED_SEPARATORS = re.compile(r"_{2,}")
_KEY_PATTERN = re.compile(rf"^{UPLOAD_KEY_ROOT}/([^/]+)/(\d+)-(.+)$")

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")

# Stem used when nothing of the client filename survives sanitizing
FALLBACK_FILENAME = "file"


@dataclass(frozen=True)
class ParsedKey:
  """Components of an upload key."""

  space_slug: str
  timestamp: int
  filename: str


def sanitize_filename(filename: str) -> str:
  """
  Make a filename safe for use inside an object key.

  Characters outside ``[A-Za-z0-9._-]`` become ``_``, runs of ``_`` are
  collapsed and leading/trailing ``_`` are trimmed.
  """
  sanitized = _UNSAFE_CHARS.sub("_", filename)
  sanitized = _REPEATED_SEPARATORS.sub("_", sanitized)
  return sanitized.strip("_")


def space_prefix(space_slug: str) -> str:
  """Key prefix, including the trailing separator, for a space."""
  return f"{UPLOAD_KEY_ROOT}/{space_slug}/"


def generate_key(
  space_slug: str, filename: str, timestamp_ms: Optional[int] = None
) -> str:
  """
  Build the object key for a new upload.

  Args:
      space_slug: Owning space
      filename: Client-supplied filename (sanitized here)
      timestamp_ms: Unix time in milliseconds; defaults to now

  Returns:
      ``uploads/{space_slug}/{timestamp_ms}-{sanitized_filename}``; a name
      that sanitizes to nothing is stored as ``FALLBACK_FILENAME``
  """
  if timestamp_ms is None:
    timestamp_ms = time.time_ns() // 1_000_000
  name = sanitize_filename(filename) or FALLBACK_FILENAME
  return f"{space_prefix(space_slug)}{timestamp_ms}-{name}"


def parse_key(key: str) -> Optional[ParsedKey]:
  """Split an upload key into its parts, or None if it has another shape."""
  match = _KEY_PATTERN.match(key)
  if not match:
    return None
  return ParsedKey(
    space_slug=match.group(1),
    timestamp=int(match.group(2)),
    filename=match.group(3),
  )


def belongs_to_space(key: str, space_slug: str) -> bool:
  """
  Check that a key sits under the space's prefix.

  The trailing separator is part of the comparison, so ``uploads/acme-evil/``
  does not belong to ``acme``.
  """
  if not space_slug:
    return False
  return key.startswith(space_prefix(space_slug))


def is_allowed_file_type(filename: str) -> bool:
  """Whether the filename carries one of the firmware image extensions."""
  return filename.lower().endswith(ALLOWED_FILE_EXTENSIONS)


def format_file_size(size_bytes: int) -> str:
  """Human-readable byte size, e.g. ``1.5 MB``."""
  if size_bytes <= 0:
    return "0 B"

  size = float(size_bytes)
  unit_index = 0
  while size >= 1024 and unit_index < len(_SIZE_UNITS) - 1:
    size /= 1024
    unit_index += 1

  formatted = f"{size:.2f}".rstrip("0").rstrip(".")
  return f"{formatted} {_SIZE_UNITS[unit_index]}"
