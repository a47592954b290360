"""
ULID identifiers for portal records.

Record ids are prefixed ULIDs (``upl_01ARZ3NDEKTSV4RRFFQ69G5FAV``): sortable by
creation time and self-describing in logs and URLs.
"""

from typing import Optional
from ulid import ULID

USER_PREFIX = "usr"
SPACE_PREFIX = "spc"
MEMBER_PREFIX = "mem"
UPLOAD_PREFIX = "upl"


def generate_prefixed_ulid(prefix: str) -> str:
  """
  Generate a prefixed ULID.

  Args:
      prefix: A short prefix to identify the record type

  Returns:
      A prefixed ULID string, e.g. "upl_01ARZ3NDEKTSV4RRFFQ69G5FAV".
  """
  return f"{prefix}_{ULID()}"


def parse_ulid(ulid_str: str) -> Optional[ULID]:
  """
  Parse a ULID string back to a ULID object.

  Args:
      ulid_str: The ULID string to parse (with or without prefix)

  Returns:
      A ULID object if valid, None otherwise
  """
  try:
    if "_" in ulid_str:
      ulid_str = ulid_str.split("_", 1)[1]
    return ULID.from_str(ulid_str)
  except (ValueError, IndexError):
    return None


def is_prefixed_ulid(value: str, prefix: str) -> bool:
  """Check that ``value`` is a well-formed ULID carrying ``prefix``."""
  if not value or not value.startswith(f"{prefix}_"):
    return False
  return parse_ulid(value) is not None
