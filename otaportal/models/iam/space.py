"""Space model.

A space is a tenant: it owns a set of uploads stored under its own
object-store prefix (``uploads/{slug}``) and grants access through
``SpaceMember`` rows. Spaces are never hard-deleted; ``is_active`` is
cleared instead and inactive spaces are invisible to every lookup used
by the API.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, String, Text, DateTime, Boolean, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import relationship, Session

from ...database import Model
from ...utils.ulid import SPACE_PREFIX, generate_prefixed_ulid

UPDATABLE_FIELDS = ("name", "slug", "description", "s3_prefix", "is_active")


@dataclass
class SpaceWithStats:
  """A space as seen by one member, with aggregate counts."""

  space: "Space"
  role: str
  member_count: int
  file_count: int
  total_size: int


class Space(Model):
  """Space model for tenant isolation of uploads."""

  __tablename__ = "spaces"

  id = Column(
    String, primary_key=True, default=lambda: generate_prefixed_ulid(SPACE_PREFIX)
  )
  name = Column(String(100), nullable=False)
  slug = Column(String(50), unique=True, nullable=False, index=True)
  description = Column(Text, nullable=True)
  s3_prefix = Column(String, nullable=False)
  is_active = Column(Boolean, default=True, nullable=False)
  created_at = Column(
    DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
  )
  updated_at = Column(
    DateTime,
    default=lambda: datetime.now(timezone.utc),
    onupdate=lambda: datetime.now(timezone.utc),
    nullable=False,
  )

  members = relationship(
    "SpaceMember", back_populates="space", cascade="all, delete-orphan"
  )
  uploads = relationship("Upload", back_populates="space")

  def __repr__(self) -> str:
    """String representation of the space."""
    return f"<Space {self.id} slug={self.slug} active={self.is_active}>"

  @classmethod
  def create(
    cls,
    name: str,
    slug: str,
    session: Session,
    description: Optional[str] = None,
    s3_prefix: Optional[str] = None,
  ) -> "Space":
    """Create a new active space. The prefix defaults to ``uploads/{slug}``."""
    space = cls(
      name=name,
      slug=slug,
      description=description,
      s3_prefix=s3_prefix or f"uploads/{slug}",
      is_active=True,
    )
    session.add(space)
    try:
      session.commit()
      session.refresh(space)
    except SQLAlchemyError:
      session.rollback()
      raise
    return space

  @classmethod
  def get_by_id(cls, space_id: str, session: Session) -> Optional["Space"]:
    """Get a space by ID regardless of its active flag."""
    return session.query(cls).filter(cls.id == space_id).first()

  @classmethod
  def get_by_slug(cls, slug: str, session: Session) -> Optional["Space"]:
    """Get an active space by slug."""
    return (
      session.query(cls).filter(cls.slug == slug, cls.is_active.is_(True)).first()
    )

  @classmethod
  def get_any_by_slug(cls, slug: str, session: Session) -> Optional["Space"]:
    """Get a space by slug including deactivated ones (admin tooling)."""
    return session.query(cls).filter(cls.slug == slug).first()

  @classmethod
  def list_active(cls, session: Session) -> List["Space"]:
    """All active spaces ordered by name."""
    return (
      session.query(cls).filter(cls.is_active.is_(True)).order_by(cls.name).all()
    )

  @classmethod
  def list_for_user(cls, user_id: str, session: Session) -> List[SpaceWithStats]:
    """Active spaces the user belongs to, ordered by name, with stats."""
    from .space_member import SpaceMember
    from .upload import Upload

    member_counts = (
      session.query(
        SpaceMember.space_id.label("space_id"),
        func.count(SpaceMember.id).label("member_count"),
      )
      .group_by(SpaceMember.space_id)
      .subquery()
    )
    upload_stats = (
      session.query(
        Upload.space_id.label("space_id"),
        func.count(Upload.id).label("file_count"),
        func.coalesce(func.sum(Upload.file_size), 0).label("total_size"),
      )
      .group_by(Upload.space_id)
      .subquery()
    )

    rows = (
      session.query(
        cls,
        SpaceMember.role,
        func.coalesce(member_counts.c.member_count, 0),
        func.coalesce(upload_stats.c.file_count, 0),
        func.coalesce(upload_stats.c.total_size, 0),
      )
      .join(SpaceMember, SpaceMember.space_id == cls.id)
      .outerjoin(member_counts, member_counts.c.space_id == cls.id)
      .outerjoin(upload_stats, upload_stats.c.space_id == cls.id)
      .filter(SpaceMember.user_id == user_id, cls.is_active.is_(True))
      .order_by(cls.name)
      .all()
    )

    return [
      SpaceWithStats(
        space=space,
        role=role,
        member_count=int(member_count),
        file_count=int(file_count),
        total_size=int(total_size),
      )
      for space, role, member_count, file_count, total_size in rows
    ]

  def get_stats(self, session: Session) -> Dict[str, int]:
    """File count, total stored bytes and member count for this space."""
    from .space_member import SpaceMember
    from .upload import Upload

    total_files, total_size = (
      session.query(
        func.count(Upload.id), func.coalesce(func.sum(Upload.file_size), 0)
      )
      .filter(Upload.space_id == self.id)
      .one()
    )
    member_count = (
      session.query(func.count(SpaceMember.id))
      .filter(SpaceMember.space_id == self.id)
      .scalar()
    )

    return {
      "totalFiles": int(total_files or 0),
      "totalSize": int(total_size or 0),
      "memberCount": int(member_count or 0),
    }

  def update(self, session: Session, **changes: Any) -> "Space":
    """Apply a partial update of name/slug/description/prefix/active flag."""
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
      raise ValueError(f"Cannot update space fields: {sorted(unknown)}")

    for key, value in changes.items():
      setattr(self, key, value)
    self.updated_at = datetime.now(timezone.utc)

    try:
      session.commit()
      session.refresh(self)
    except SQLAlchemyError:
      session.rollback()
      raise
    return self

  def deactivate(self, session: Session) -> "Space":
    """Hide the space from every lookup without deleting its data."""
    return self.update(session, is_active=False)

  def to_summary(self) -> dict:
    """Compact representation embedded in file responses."""
    return {"id": self.id, "name": self.name, "slug": self.slug}
