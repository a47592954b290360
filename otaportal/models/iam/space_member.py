"""SpaceMember model for space access control.

Access Control Model:
- Every user who can see a space has exactly one SpaceMember row for it
- Roles: owner (manages the space), admin (manages members and files),
  member (uploads and downloads)
- Removing the row revokes access
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
  Column,
  String,
  DateTime,
  ForeignKey,
  UniqueConstraint,
  Index,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, relationship, Session

from ...database import Model
from ...utils.ulid import MEMBER_PREFIX, generate_prefixed_ulid


class SpaceMember(Model):
  """Membership of a user in a space with a role."""

  __tablename__ = "space_members"
  __table_args__ = (
    UniqueConstraint("space_id", "user_id", name="_space_member_uc"),
    Index("idx_space_members_space_user", "space_id", "user_id"),
  )

  id = Column(
    String, primary_key=True, default=lambda: generate_prefixed_ulid(MEMBER_PREFIX)
  )
  space_id = Column(String, ForeignKey("spaces.id"), nullable=False, index=True)
  user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
  role = Column(String, nullable=False, default="member")  # owner, admin, member
  created_at = Column(
    DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
  )
  updated_at = Column(
    DateTime,
    default=lambda: datetime.now(timezone.utc),
    onupdate=lambda: datetime.now(timezone.utc),
    nullable=False,
  )

  user = relationship("User", back_populates="memberships")
  space = relationship("Space", back_populates="members")

  def __repr__(self) -> str:
    """String representation of the space-user relationship."""
    return f"<SpaceMember {self.id} space={self.space_id} user={self.user_id} role={self.role}>"

  @classmethod
  def create(
    cls,
    space_id: str,
    user_id: str,
    role: str = "member",
    session: Optional[Session] = None,
  ) -> "SpaceMember":
    """Grant a user access to a space."""
    if session is None:
      raise ValueError("Session is required for SpaceMember creation")

    member = cls(space_id=space_id, user_id=user_id, role=role)

    session.add(member)
    try:
      session.commit()
      session.refresh(member)
    except SQLAlchemyError:
      session.rollback()
      raise
    return member

  @classmethod
  def get(
    cls, space_id: str, user_id: str, session: Session
  ) -> Optional["SpaceMember"]:
    """Get a specific membership."""
    return (
      session.query(cls)
      .filter(cls.space_id == space_id, cls.user_id == user_id)
      .first()
    )

  @classmethod
  def get_by_space_id(cls, space_id: str, session: Session) -> List["SpaceMember"]:
    """All members of a space with their user identity loaded."""
    return (
      session.query(cls)
      .options(joinedload(cls.user))
      .filter(cls.space_id == space_id)
      .order_by(cls.created_at)
      .all()
    )

  @classmethod
  def update_role(
    cls, space_id: str, user_id: str, new_role: str, session: Session
  ) -> Optional["SpaceMember"]:
    """Change a member's role. Returns None when there is no membership."""
    member = cls.get(space_id, user_id, session)
    if not member:
      return None

    member.role = new_role
    member.updated_at = datetime.now(timezone.utc)
    try:
      session.commit()
      session.refresh(member)
    except SQLAlchemyError:
      session.rollback()
      raise
    return member

  @classmethod
  def remove(cls, space_id: str, user_id: str, session: Session) -> bool:
    """Revoke a user's access. Returns False when there was no membership."""
    member = cls.get(space_id, user_id, session)
    if not member:
      return False

    session.delete(member)
    try:
      session.commit()
    except SQLAlchemyError:
      session.rollback()
      raise
    return True

  @classmethod
  def count_with_role(cls, space_id: str, role: str, session: Session) -> int:
    return (
      session.query(cls).filter(cls.space_id == space_id, cls.role == role).count()
    )
