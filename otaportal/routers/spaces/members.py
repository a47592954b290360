"""Space membership endpoints. All require the manage_members permission."""

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request, status

from ...exceptions import PortalError
from ...models.api.common import error_responses
from ...models.api.spaces import (
  AddMemberRequest,
  ListMembersResponse,
  MemberItem,
  MessageResponse,
  UpdateMemberRoleRequest,
)
from ...models.iam import User
from ...middleware.auth.dependencies import get_current_user
from ...operations.spaces import SpaceMembershipManager
from .common import get_membership_manager, internal_error, member_item

router = APIRouter()


@router.get(
  "/{slug}/members",
  response_model=ListMembersResponse,
  operation_id="listSpaceMembers",
  summary="List Members",
  responses=error_responses(401, 403, 404),
)
async def list_members(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  current_user: User = Depends(get_current_user),
  manager: SpaceMembershipManager = Depends(get_membership_manager),
) -> ListMembersResponse:
  try:
    members = manager.list_members(current_user.id, slug, endpoint=request.url.path)
    return ListMembersResponse(members=[member_item(m) for m in members])
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("list_members", e, current_user.id, slug)


@router.post(
  "/{slug}/members",
  response_model=MemberItem,
  status_code=status.HTTP_201_CREATED,
  operation_id="addSpaceMember",
  summary="Add Member",
  description="Grant an existing user access. Granting `owner` requires the owner role.",
  responses=error_responses(400, 401, 403, 404, 409),
)
async def add_member(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  body: AddMemberRequest = Body(...),
  current_user: User = Depends(get_current_user),
  manager: SpaceMembershipManager = Depends(get_membership_manager),
) -> MemberItem:
  try:
    member = manager.add_member(
      current_user.id, slug, body.email, body.role, endpoint=request.url.path
    )
    return member_item(member)
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("add_member", e, current_user.id, slug)


@router.patch(
  "/{slug}/members/{user_id}",
  response_model=MemberItem,
  operation_id="updateSpaceMemberRole",
  summary="Change Member Role",
  responses=error_responses(400, 401, 403, 404, 409),
)
async def update_member_role(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  user_id: str = Path(..., description="Member's user identifier"),
  body: UpdateMemberRoleRequest = Body(...),
  current_user: User = Depends(get_current_user),
  manager: SpaceMembershipManager = Depends(get_membership_manager),
) -> MemberItem:
  try:
    member = manager.update_role(
      current_user.id, slug, user_id, body.role, endpoint=request.url.path
    )
    return member_item(member)
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("update_member_role", e, current_user.id, slug)


@router.delete(
  "/{slug}/members/{user_id}",
  response_model=MessageResponse,
  operation_id="removeSpaceMember",
  summary="Remove Member",
  responses=error_responses(401, 403, 404, 409),
)
async def remove_member(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  user_id: str = Path(..., description="Member's user identifier"),
  current_user: User = Depends(get_current_user),
  manager: SpaceMembershipManager = Depends(get_membership_manager),
) -> MessageResponse:
  try:
    manager.remove_member(current_user.id, slug, user_id, endpoint=request.url.path)
    return MessageResponse(message="Member removed successfully")
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("remove_member", e, current_user.id, slug)
