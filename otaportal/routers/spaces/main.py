"""Space listing and detail endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from ...exceptions import PortalError
from ...models.api.common import error_responses
from ...models.api.spaces import (
  ListSpacesResponse,
  SpaceDetailResponse,
  SpaceListItem,
  SpaceStats,
)
from ...models.iam import User
from ...middleware.auth.dependencies import get_current_user
from ...operations.spaces import UploadOrchestrator
from .common import file_item, get_upload_orchestrator, internal_error

router = APIRouter()


@router.get(
  "",
  response_model=ListSpacesResponse,
  operation_id="listSpaces",
  summary="List Spaces",
  description="Active spaces the caller belongs to, with role and storage totals.",
  responses=error_responses(401),
)
async def list_spaces(
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> ListSpacesResponse:
  entries = orchestrator.list_spaces(current_user.id)
  return ListSpacesResponse(
    spaces=[
      SpaceListItem(
        id=entry.space.id,
        name=entry.space.name,
        slug=entry.space.slug,
        description=entry.space.description,
        role=entry.role,
        memberCount=entry.member_count,
        fileCount=entry.file_count,
        totalSize=entry.total_size,
      )
      for entry in entries
    ]
  )


@router.get(
  "/{slug}",
  response_model=SpaceDetailResponse,
  operation_id="getSpace",
  summary="Get Space",
  description="Space detail with the caller's role, permissions, stats and recent uploads.",
  responses=error_responses(401, 403, 404),
)
async def get_space(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> SpaceDetailResponse:
  try:
    overview = orchestrator.get_space(
      current_user.id, slug, endpoint=request.url.path
    )
    return SpaceDetailResponse(
      id=overview.space.id,
      name=overview.space.name,
      slug=overview.space.slug,
      description=overview.space.description,
      role=overview.role.value,
      permissions=overview.permissions,
      stats=SpaceStats(**overview.stats),
      recentUploads=[file_item(upload) for upload in overview.recent_uploads],
    )
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("get_space", e, current_user.id, slug)
