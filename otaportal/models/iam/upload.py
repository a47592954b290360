"""Upload model.

One row per firmware image stored in the object store. Rows are written
once, after the object has been confirmed to exist, and are never updated
in place. ``s3_key`` is unique so a retried completion cannot register the
same object twice.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
  BigInteger,
  Column,
  DateTime,
  ForeignKey,
  Index,
  String,
  Text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, relationship, Session

from ...database import Model
from ...utils.ulid import UPLOAD_PREFIX, generate_prefixed_ulid


class Upload(Model):
  """Metadata for one stored file."""

  __tablename__ = "uploads"
  __table_args__ = (Index("idx_uploads_space_uploaded", "space_id", "uploaded_at"),)

  id = Column(
    String, primary_key=True, default=lambda: generate_prefixed_ulid(UPLOAD_PREFIX)
  )
  space_id = Column(String, ForeignKey("spaces.id"), nullable=False, index=True)
  filename = Column(String(255), nullable=False)
  s3_key = Column(String(512), unique=True, nullable=False)
  file_size = Column(BigInteger, nullable=False)
  content_type = Column(String, nullable=False)
  md5_hash = Column(String(32), nullable=True)
  description = Column(Text, nullable=True)
  changelog = Column(Text, nullable=True)
  version = Column(String(50), nullable=True)
  uploaded_by = Column(String, ForeignKey("users.id"), nullable=False, index=True)
  uploaded_at = Column(
    DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
  )

  space = relationship("Space", back_populates="uploads")
  uploader = relationship("User")

  def __repr__(self) -> str:
    """String representation of the upload."""
    return f"<Upload {self.id} space={self.space_id} key={self.s3_key}>"

  @classmethod
  def create(
    cls,
    space_id: str,
    filename: str,
    s3_key: str,
    file_size: int,
    content_type: str,
    uploaded_by: str,
    session: Session,
    md5_hash: Optional[str] = None,
    description: Optional[str] = None,
    changelog: Optional[str] = None,
    version: Optional[str] = None,
  ) -> "Upload":
    """Insert an upload record. Raises IntegrityError on a duplicate key."""
    upload = cls(
      space_id=space_id,
      filename=filename,
      s3_key=s3_key,
      file_size=file_size,
      content_type=content_type,
      md5_hash=md5_hash,
      description=description,
      changelog=changelog,
      version=version,
      uploaded_by=uploaded_by,
    )
    session.add(upload)
    try:
      session.commit()
      session.refresh(upload)
    except SQLAlchemyError:
      session.rollback()
      raise
    return upload

  @classmethod
  def get_by_id(cls, upload_id: str, session: Session) -> Optional["Upload"]:
    """Get an upload by ID with its uploader loaded."""
    return (
      session.query(cls)
      .options(joinedload(cls.uploader))
      .filter(cls.id == upload_id)
      .first()
    )

  @classmethod
  def get_by_key(cls, s3_key: str, session: Session) -> Optional["Upload"]:
    """Get an upload by object-store key."""
    return (
      session.query(cls)
      .options(joinedload(cls.uploader))
      .filter(cls.s3_key == s3_key)
      .first()
    )

  @classmethod
  def get_recent(
    cls, space_id: str, session: Session, limit: int = 5
  ) -> List["Upload"]:
    """Most recent uploads in a space."""
    return (
      session.query(cls)
      .options(joinedload(cls.uploader))
      .filter(cls.space_id == space_id)
      .order_by(cls.uploaded_at.desc(), cls.id.desc())
      .limit(limit)
      .all()
    )

  @classmethod
  def keys_for_space(cls, space_id: str, session: Session) -> set[str]:
    """Every registered object key in a space."""
    rows = session.query(cls.s3_key).filter(cls.space_id == space_id).all()
    return {row[0] for row in rows}

  def delete(self, session: Session) -> None:
    """Remove the metadata row. The stored object is left untouched."""
    session.delete(self)
    try:
      session.commit()
    except SQLAlchemyError:
      session.rollback()
      raise
