"""
Space access control.

Answers "can user U perform action A in space S" from SpaceMember rows.
Every route goes through ``authorize``; nothing else in the service
interprets roles.

Role matrix:

  | action         | member | admin | owner |
  |----------------|--------|-------|-------|
  | upload         | yes    | yes   | yes   |
  | delete         | no     | yes   | yes   |
  | manage_members | no     | yes   | yes   |
  | manage_space   | no     | no    | yes   |

A missing membership or an unrecognised role denies everything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from sqlalchemy.orm import Session

from ...exceptions import (
  InsufficientPermissionsError,
  SpaceAccessDeniedError,
  SpaceNotFoundError,
)
from ...logger import logger
from ...models.iam import Space, SpaceMember
from ...security import SecurityAuditLogger


class SpaceRole(str, Enum):
  """Membership roles, least to most privileged."""

  MEMBER = "member"
  ADMIN = "admin"
  OWNER = "owner"


class SpaceAction(str, Enum):
  """Actions gated by role."""

  UPLOAD = "upload"
  DELETE = "delete"
  MANAGE_MEMBERS = "manage_members"
  MANAGE_SPACE = "manage_space"


PERMISSION_MATRIX: Dict[SpaceRole, FrozenSet[SpaceAction]] = {
  SpaceRole.MEMBER: frozenset({SpaceAction.UPLOAD}),
  SpaceRole.ADMIN: frozenset(
    {SpaceAction.UPLOAD, SpaceAction.DELETE, SpaceAction.MANAGE_MEMBERS}
  ),
  SpaceRole.OWNER: frozenset(SpaceAction),
}


@dataclass(frozen=True)
class SpaceAccess:
  """Outcome of a successful authorization."""

  space: Space
  membership: SpaceMember
  role: SpaceRole

  def can(self, action: Union[SpaceAction, str]) -> bool:
    return can(self.role, action)


def _parse_role(role: Optional[str]) -> Optional[SpaceRole]:
  if role is None:
    return None
  try:
    return SpaceRole(role)
  except ValueError:
    logger.warning(f"Unknown space role '{role}' treated as no access")
    return None


def can(role: Union[SpaceRole, str, None], action: Union[SpaceAction, str]) -> bool:
  """Pure lookup in the permission matrix."""
  parsed_role = role if isinstance(role, SpaceRole) else _parse_role(role)
  if parsed_role is None:
    return False
  try:
    parsed_action = SpaceAction(action)
  except ValueError:
    return False
  return parsed_action in PERMISSION_MATRIX[parsed_role]


def has_space_access(user_id: str, space_slug: str, session: Session) -> bool:
  """True iff the user is a member of the space and the space is active."""
  space = Space.get_by_slug(space_slug, session)
  if not space:
    return False
  return SpaceMember.get(space.id, user_id, session) is not None


def role_of(user_id: str, space_slug: str, session: Session) -> Optional[SpaceRole]:
  """The user's role in the active space, or None without access."""
  space = Space.get_by_slug(space_slug, session)
  if not space:
    return None
  member = SpaceMember.get(space.id, user_id, session)
  if not member:
    return None
  return _parse_role(member.role)


def has_permission(
  space_id: str,
  user_id: str,
  action: Union[SpaceAction, str],
  session: Session,
) -> bool:
  """Whether the user's membership in the space allows ``action``."""
  member = SpaceMember.get(space_id, user_id, session)
  if not member:
    return False
  return can(member.role, action)


def authorize(
  user_id: str,
  space_slug: str,
  session: Session,
  action: Union[SpaceAction, str, None] = None,
  endpoint: Optional[str] = None,
) -> SpaceAccess:
  """
  Resolve the caller's access to a space, optionally for a specific action.

  Args:
      user_id: Authenticated caller
      space_slug: Target space
      session: Database session
      action: Action that must be permitted; None checks membership only
      endpoint: Request path recorded on denials

  Returns:
      SpaceAccess for the caller

  Raises:
      SpaceNotFoundError: Space missing or inactive
      SpaceAccessDeniedError: Caller is not a member
      InsufficientPermissionsError: Caller's role does not allow ``action``
  """
  space = Space.get_by_slug(space_slug, session)
  if not space:
    raise SpaceNotFoundError(space_slug)

  member = SpaceMember.get(space.id, user_id, session)
  role = _parse_role(member.role) if member else None
  if member is None or role is None:
    SecurityAuditLogger.log_authorization_denied(
      user_id=user_id,
      resource=f"space:{space_slug}",
      action=str(SpaceAction(action).value) if action else "access",
      endpoint=endpoint,
    )
    raise SpaceAccessDeniedError(space_slug, user_id)

  if action is not None and not can(role, action):
    action_name = SpaceAction(action).value
    SecurityAuditLogger.log_authorization_denied(
      user_id=user_id,
      resource=f"space:{space_slug}",
      action=action_name,
      endpoint=endpoint,
    )
    raise InsufficientPermissionsError(action_name, space_slug, role.value)

  return SpaceAccess(space=space, membership=member, role=role)
