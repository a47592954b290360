"""User identity model."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship, Session
from sqlalchemy.exc import SQLAlchemyError

from ...database import Model
from ...utils.ulid import USER_PREFIX, generate_prefixed_ulid


class User(Model):
  """A portal user. Identity is supplied by the external session provider."""

  __tablename__ = "users"

  id = Column(
    String, primary_key=True, default=lambda: generate_prefixed_ulid(USER_PREFIX)
  )
  email = Column(String, unique=True, nullable=False, index=True)
  name = Column(String, nullable=True)
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

  memberships = relationship(
    "SpaceMember", back_populates="user", cascade="all, delete-orphan"
  )

  def __repr__(self) -> str:
    """String representation of the user."""
    return f"<User {self.id} {self.email}>"

  @classmethod
  def get_by_id(cls, user_id: str, session: Session) -> Optional["User"]:
    """Get a user by ID."""
    return session.query(cls).filter(cls.id == user_id).first()

  @classmethod
  def get_by_email(cls, email: str, session: Session) -> Optional["User"]:
    """Get a user by email (case-insensitive).

    Emails are stored in lowercase, so the input is normalized and the
    lookup uses the unique index directly.
    """
    return session.query(cls).filter(cls.email == email.lower()).first()

  @classmethod
  def create(
    cls, email: str, session: Session, name: Optional[str] = None
  ) -> "User":
    """Create a new user."""
    user = cls(email=email.lower(), name=name)
    session.add(user)
    try:
      session.commit()
      session.refresh(user)
    except SQLAlchemyError:
      session.rollback()
      raise
    return user

  def to_identity(self) -> dict:
    """Display identity embedded in upload and member responses."""
    return {"id": self.id, "name": self.name, "email": self.email}
