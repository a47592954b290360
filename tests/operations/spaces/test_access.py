"""Tests for space role checks and authorization."""

from unittest.mock import patch

import pytest

from otaportal.exceptions import (
  InsufficientPermissionsError,
  SpaceAccessDeniedError,
  SpaceNotFoundError,
)
from otaportal.models.iam import SpaceMember
from otaportal.operations.spaces.access import (
  SpaceAction,
  SpaceRole,
  authorize,
  can,
  has_permission,
  has_space_access,
  role_of,
)


@pytest.mark.unit
class TestPermissionMatrix:
  @pytest.mark.parametrize(
    "role,action,allowed",
    [
      ("member", "upload", True),
      ("member", "delete", False),
      ("member", "manage_members", False),
      ("member", "manage_space", False),
      ("admin", "upload", True),
      ("admin", "delete", True),
      ("admin", "manage_members", True),
      ("admin", "manage_space", False),
      ("owner", "upload", True),
      ("owner", "delete", True),
      ("owner", "manage_members", True),
      ("owner", "manage_space", True),
    ],
  )
  def test_matrix(self, role, action, allowed):
    assert can(role, action) is allowed

  def test_enum_arguments(self):
    assert can(SpaceRole.ADMIN, SpaceAction.DELETE)

  def test_unknown_role_denies_everything(self):
    assert not any(can("superuser", action) for action in SpaceAction)

  def test_missing_role_denies(self):
    assert can(None, "upload") is False

  def test_unknown_action_denies(self):
    assert can("owner", "launch_rockets") is False


@pytest.mark.unit
class TestMembershipQueries:
  def test_has_space_access(self, test_db, space, member_user, outsider):
    assert has_space_access(member_user.id, "acme", test_db)
    assert not has_space_access(outsider.id, "acme", test_db)
    assert not has_space_access(member_user.id, "missing", test_db)

  def test_inactive_space_has_no_access(self, test_db, space, member_user):
    space.deactivate(test_db)
    assert not has_space_access(member_user.id, "acme", test_db)

  def test_role_of(self, test_db, space, owner, admin_user, outsider):
    assert role_of(owner.id, "acme", test_db) == SpaceRole.OWNER
    assert role_of(admin_user.id, "acme", test_db) == SpaceRole.ADMIN
    assert role_of(outsider.id, "acme", test_db) is None

  def test_role_of_agrees_with_access_for_inactive_space(
    self, test_db, space, owner
  ):
    space.deactivate(test_db)

    assert role_of(owner.id, "acme", test_db) is None
    assert not has_space_access(owner.id, "acme", test_db)

  def test_has_permission(self, test_db, space, admin_user, member_user, outsider):
    assert has_permission(space.id, admin_user.id, "delete", test_db)
    assert not has_permission(space.id, member_user.id, "delete", test_db)
    assert not has_permission(space.id, outsider.id, "upload", test_db)


@pytest.mark.unit
class TestAuthorize:
  def test_member_without_action(self, test_db, space, member_user):
    access = authorize(member_user.id, "acme", test_db)
    assert access.space.id == space.id
    assert access.role == SpaceRole.MEMBER
    assert access.can("upload")
    assert not access.can("delete")

  def test_unknown_space(self, test_db, owner):
    with pytest.raises(SpaceNotFoundError):
      authorize(owner.id, "nope", test_db)

  def test_inactive_space_is_not_found(self, test_db, space, owner):
    space.deactivate(test_db)
    with pytest.raises(SpaceNotFoundError):
      authorize(owner.id, "acme", test_db)

  def test_non_member_is_denied_and_audited(self, test_db, space, outsider):
    with patch(
      "otaportal.operations.spaces.access.SecurityAuditLogger.log_authorization_denied"
    ) as audit:
      with pytest.raises(SpaceAccessDeniedError):
        authorize(outsider.id, "acme", test_db, action="upload", endpoint="/x")
    audit.assert_called_once()
    assert audit.call_args.kwargs["resource"] == "space:acme"
    assert audit.call_args.kwargs["action"] == "upload"

  def test_role_too_low(self, test_db, space, member_user):
    with pytest.raises(InsufficientPermissionsError) as exc_info:
      authorize(member_user.id, "acme", test_db, action=SpaceAction.DELETE)
    assert exc_info.value.status_code == 403
    assert exc_info.value.details["role"] == "member"

  def test_admin_may_delete(self, test_db, space, admin_user):
    access = authorize(admin_user.id, "acme", test_db, action="delete")
    assert access.role == SpaceRole.ADMIN

  def test_unrecognised_stored_role_is_denied(self, test_db, space, member_user):
    SpaceMember.update_role(space.id, member_user.id, "viewer", test_db)
    with pytest.raises(SpaceAccessDeniedError):
      authorize(member_user.id, "acme", test_db)
