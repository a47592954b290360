"""Database and API models."""

from .iam import Space, SpaceMember, SpaceWithStats, Upload, User

__all__ = [
  "Space",
  "SpaceMember",
  "SpaceWithStats",
  "Upload",
  "User",
]
