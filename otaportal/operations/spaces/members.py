"""
Membership management for a space.

Requires ``manage_members``. Granting, revoking or changing the ``owner``
role additionally requires ``manage_space``, and the last owner of a
space cannot be demoted or removed.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ...exceptions import (
  ConflictError,
  InsufficientPermissionsError,
  MemberNotFoundError,
  UserNotFoundError,
  ValidationError,
)
from ...models.iam import SpaceMember, User
from ...security import SecurityAuditLogger
from .access import SpaceAccess, SpaceAction, SpaceRole, authorize


def _parse_role(role: str) -> SpaceRole:
  try:
    return SpaceRole(role)
  except ValueError:
    raise ValidationError(f"Unknown role '{role}'", field="role")


class SpaceMembershipManager:
  """Lists and edits SpaceMember rows on behalf of an authorized user."""

  def __init__(self, session: Session):
    self.session = session

  def list_members(
    self, user_id: str, space_slug: str, endpoint: Optional[str] = None
  ) -> List[SpaceMember]:
    access = self._authorize(user_id, space_slug, endpoint)
    return SpaceMember.get_by_space_id(access.space.id, self.session)

  def add_member(
    self,
    user_id: str,
    space_slug: str,
    email: str,
    role: str = "member",
    endpoint: Optional[str] = None,
  ) -> SpaceMember:
    """Grant an existing user access to the space."""
    access = self._authorize(user_id, space_slug, endpoint)
    new_role = _parse_role(role)
    self._require_owner_rights(access, new_role)

    target = User.get_by_email(email, self.session)
    if target is None:
      raise UserNotFoundError(email)
    if SpaceMember.get(access.space.id, target.id, self.session):
      raise ConflictError(
        "User is already a member of this space",
        error_code="MEMBER_EXISTS",
        details={"user_id": target.id, "space": space_slug},
      )

    member = SpaceMember.create(
      space_id=access.space.id,
      user_id=target.id,
      role=new_role.value,
      session=self.session,
    )
    SecurityAuditLogger.log_membership_changed(
      user_id=user_id,
      space_slug=space_slug,
      target_user_id=target.id,
      change="added",
      role=new_role.value,
    )
    return member

  def update_role(
    self,
    user_id: str,
    space_slug: str,
    target_user_id: str,
    role: str,
    endpoint: Optional[str] = None,
  ) -> SpaceMember:
    access = self._authorize(user_id, space_slug, endpoint)
    new_role = _parse_role(role)

    member = SpaceMember.get(access.space.id, target_user_id, self.session)
    if member is None:
      raise MemberNotFoundError(target_user_id, space_slug)

    is_owner = member.role == SpaceRole.OWNER.value
    if is_owner or new_role == SpaceRole.OWNER:
      self._require_owner_rights(access, SpaceRole.OWNER)
    if is_owner and new_role != SpaceRole.OWNER:
      self._ensure_not_last_owner(access, target_user_id)

    updated = SpaceMember.update_role(
      access.space.id, target_user_id, new_role.value, self.session
    )
    SecurityAuditLogger.log_membership_changed(
      user_id=user_id,
      space_slug=space_slug,
      target_user_id=target_user_id,
      change="role_changed",
      role=new_role.value,
    )
    return updated

  def remove_member(
    self,
    user_id: str,
    space_slug: str,
    target_user_id: str,
    endpoint: Optional[str] = None,
  ) -> None:
    access = self._authorize(user_id, space_slug, endpoint)

    member = SpaceMember.get(access.space.id, target_user_id, self.session)
    if member is None:
      raise MemberNotFoundError(target_user_id, space_slug)
    if member.role == SpaceRole.OWNER.value:
      self._require_owner_rights(access, SpaceRole.OWNER)
      self._ensure_not_last_owner(access, target_user_id)

    SpaceMember.remove(access.space.id, target_user_id, self.session)
    SecurityAuditLogger.log_membership_changed(
      user_id=user_id,
      space_slug=space_slug,
      target_user_id=target_user_id,
      change="removed",
    )

  def _authorize(
    self, user_id: str, space_slug: str, endpoint: Optional[str]
  ) -> SpaceAccess:
    return authorize(
      user_id,
      space_slug,
      self.session,
      action=SpaceAction.MANAGE_MEMBERS,
      endpoint=endpoint,
    )

  def _require_owner_rights(self, access: SpaceAccess, role: SpaceRole) -> None:
    if role == SpaceRole.OWNER and not access.can(SpaceAction.MANAGE_SPACE):
      SecurityAuditLogger.log_authorization_denied(
        user_id=access.membership.user_id,
        resource=f"space:{access.space.slug}",
        action=SpaceAction.MANAGE_SPACE.value,
      )
      raise InsufficientPermissionsError(
        SpaceAction.MANAGE_SPACE.value, access.space.slug, access.role.value
      )

  def _ensure_not_last_owner(self, access: SpaceAccess, target_user_id: str) -> None:
    owners = SpaceMember.count_with_role(
      access.space.id, SpaceRole.OWNER.value, self.session
    )
    if owners <= 1:
      raise ConflictError(
        "A space must keep at least one owner",
        error_code="LAST_OWNER",
        details={"user_id": target_user_id, "space": access.space.slug},
      )
