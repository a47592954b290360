"""Identity and access models."""

from .user import User
from .space import Space, SpaceWithStats
from .space_member import SpaceMember
from .upload import Upload

__all__ = [
  "Space",
  "SpaceMember",
  "SpaceWithStats",
  "Upload",
  "User",
]
