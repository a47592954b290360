"""
Upload registry.

Reads and writes Upload metadata rows for a space. The registry enforces
storage-level constraints only (the unique object key); space ownership
and store existence are checked by the orchestrator before ``create``.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ...config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_SEARCH_LENGTH
from ...exceptions import DuplicateUploadKeyError, ValidationError
from ...logger import logger
from ...models.iam import Upload


class SortField(str, Enum):
  UPLOADED_AT = "uploadedAt"
  FILENAME = "filename"
  FILE_SIZE = "fileSize"


class SortOrder(str, Enum):
  ASC = "asc"
  DESC = "desc"


_SORT_COLUMNS = {
  SortField.UPLOADED_AT: Upload.uploaded_at,
  SortField.FILENAME: Upload.filename,
  SortField.FILE_SIZE: Upload.file_size,
}


@dataclass
class ListQuery:
  """Paging, search and ordering for a file listing."""

  page: int = 1
  limit: int = DEFAULT_PAGE_SIZE
  search: Optional[str] = None
  sort_by: SortField = SortField.UPLOADED_AT
  sort_order: SortOrder = SortOrder.DESC

  def __post_init__(self):
    if self.page < 1:
      raise ValidationError("page must be at least 1", field="page")
    if not 1 <= self.limit <= MAX_PAGE_SIZE:
      raise ValidationError(
        f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit"
      )
    if self.search and len(self.search) > MAX_SEARCH_LENGTH:
      raise ValidationError(
        f"search must be at most {MAX_SEARCH_LENGTH} characters", field="search"
      )
    self.sort_by = SortField(self.sort_by)
    self.sort_order = SortOrder(self.sort_order)


@dataclass
class UploadPage:
  """One page of uploads plus paging totals."""

  items: List[Upload] = field(default_factory=list)
  total: int = 0
  page: int = 1
  limit: int = DEFAULT_PAGE_SIZE

  @property
  def total_pages(self) -> int:
    return total_pages(self.total, self.limit)


@dataclass
class NewUpload:
  """Fields of an upload record to be registered."""

  space_id: str
  filename: str
  s3_key: str
  file_size: int
  content_type: str
  uploaded_by: str
  md5_hash: Optional[str] = None
  description: Optional[str] = None
  changelog: Optional[str] = None
  version: Optional[str] = None


def total_pages(total: int, limit: int) -> int:
  """``ceil(total / limit)``; zero items means zero pages."""
  if total <= 0:
    return 0
  return math.ceil(total / limit)


def _escape_like(value: str) -> str:
  return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UploadRegistry:
  """CRUD over Upload rows bound to one database session."""

  def __init__(self, session: Session):
    self.session = session

  def create(self, record: NewUpload) -> Upload:
    """
    Insert an upload row.

    Raises:
        DuplicateUploadKeyError: The key is already registered
    """
    try:
      return Upload.create(
        space_id=record.space_id,
        filename=record.filename,
        s3_key=record.s3_key,
        file_size=record.file_size,
        content_type=record.content_type,
        uploaded_by=record.uploaded_by,
        session=self.session,
        md5_hash=record.md5_hash,
        description=record.description,
        changelog=record.changelog,
        version=record.version,
      )
    except IntegrityError:
      if Upload.get_by_key(record.s3_key, self.session) is not None:
        logger.info(f"Upload key already registered: {record.s3_key}")
        raise DuplicateUploadKeyError(record.s3_key)
      raise

  def list(self, space_id: str, query: Optional[ListQuery] = None) -> UploadPage:
    """List a space's uploads with optional search, ordering and paging."""
    query = query or ListQuery()

    base = self.session.query(Upload).filter(Upload.space_id == space_id)

    search = (query.search or "").strip()
    if search:
      pattern = f"%{_escape_like(search)}%"
      base = base.filter(
        or_(
          Upload.filename.ilike(pattern, escape="\\"),
          Upload.description.ilike(pattern, escape="\\"),
          Upload.version.ilike(pattern, escape="\\"),
        )
      )

    total = base.count()

    column = _SORT_COLUMNS[query.sort_by]
    if query.sort_order == SortOrder.ASC:
      ordering = (column.asc(), Upload.id.asc())
    else:
      ordering = (column.desc(), Upload.id.desc())

    items = (
      base.options(joinedload(Upload.uploader))
      .order_by(*ordering)
      .offset((query.page - 1) * query.limit)
      .limit(query.limit)
      .all()
    )

    return UploadPage(items=items, total=total, page=query.page, limit=query.limit)

  def get_by_id(self, upload_id: str) -> Optional[Upload]:
    return Upload.get_by_id(upload_id, self.session)

  def get_by_key(self, s3_key: str) -> Optional[Upload]:
    """Look up the row registered for an object key, if any."""
    return Upload.get_by_key(s3_key, self.session)

  def delete(self, upload_id: str) -> None:
    """Remove the metadata row. Does not touch the object store."""
    upload = Upload.get_by_id(upload_id, self.session)
    if upload is not None:
      upload.delete(self.session)

  def recent(self, space_id: str, limit: int = 5) -> List[Upload]:
    return Upload.get_recent(space_id, self.session, limit=limit)

  def keys_for_space(self, space_id: str) -> set[str]:
    return Upload.keys_for_space(space_id, self.session)
