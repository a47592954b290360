"""
File listing, detail, download and deletion within a space.

Downloads never stream bytes through the API: the endpoint returns a
presigned GET URL valid for one hour.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request

from ...config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_SEARCH_LENGTH
from ...exceptions import PortalError
from ...models.api.common import error_responses
from ...models.api.spaces import (
  DownloadResponse,
  FileDetail,
  ListFilesResponse,
  MessageResponse,
  Pagination,
)
from ...models.iam import User
from ...middleware.auth.dependencies import get_current_user
from ...operations.spaces import ListQuery, UploadOrchestrator
from .common import (
  file_detail,
  file_item,
  get_upload_orchestrator,
  internal_error,
  space_ref,
)

router = APIRouter()


@router.get(
  "/{slug}/files",
  response_model=ListFilesResponse,
  operation_id="listSpaceFiles",
  summary="List Files",
  description="""Paginated file listing for a space.

`search` matches filename, description and version case-insensitively.
Results are ordered by `sortBy` (uploadedAt, filename, fileSize) in
`sortOrder` (asc, desc).""",
  responses=error_responses(400, 401, 403, 404),
)
async def list_files(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  page: int = Query(1, ge=1),
  limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
  search: Optional[str] = Query(None, max_length=MAX_SEARCH_LENGTH),
  sortBy: Literal["uploadedAt", "filename", "fileSize"] = Query("uploadedAt"),
  sortOrder: Literal["asc", "desc"] = Query("desc"),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> ListFilesResponse:
  try:
    listing = orchestrator.list_files(
      current_user.id,
      slug,
      ListQuery(
        page=page,
        limit=limit,
        search=search,
        sort_by=sortBy,
        sort_order=sortOrder,
      ),
      endpoint=request.url.path,
    )
    result = listing.page
    return ListFilesResponse(
      space=space_ref(listing.space),
      files=[file_item(upload) for upload in result.items],
      pagination=Pagination(
        page=result.page,
        limit=result.limit,
        total=result.total,
        totalPages=result.total_pages,
      ),
    )
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("list_files", e, current_user.id, slug)


@router.get(
  "/{slug}/files/{file_id}",
  response_model=FileDetail,
  operation_id="getSpaceFile",
  summary="Get File",
  responses=error_responses(401, 403, 404),
)
async def get_file(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  file_id: str = Path(..., description="Upload identifier"),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> FileDetail:
  try:
    upload = orchestrator.get_file(
      current_user.id, slug, file_id, endpoint=request.url.path
    )
    return file_detail(upload)
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("get_file", e, current_user.id, slug)


@router.get(
  "/{slug}/files/{file_id}/download",
  response_model=DownloadResponse,
  operation_id="downloadSpaceFile",
  summary="Get Download URL",
  description="Presigned GET URL that downloads the file under its original name.",
  responses=error_responses(401, 403, 404),
)
async def download_file(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  file_id: str = Path(..., description="Upload identifier"),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> DownloadResponse:
  try:
    link = orchestrator.download(
      current_user.id, slug, file_id, endpoint=request.url.path
    )
    return DownloadResponse(
      downloadUrl=link.download_url,
      expiresIn=link.expires_in,
      filename=link.filename,
    )
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("generate_download_url", e, current_user.id, slug)


@router.delete(
  "/{slug}/files/{file_id}",
  response_model=MessageResponse,
  operation_id="deleteSpaceFile",
  summary="Delete File",
  description="""Remove a file from the space. Requires the `delete` permission
(admin or owner).

The stored object is only removed when the deployment enables
`DELETE_PURGES_OBJECTS`; otherwise the reconciliation sweep reports it.""",
  responses=error_responses(401, 403, 404),
)
async def delete_file(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  file_id: str = Path(..., description="Upload identifier"),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> MessageResponse:
  try:
    orchestrator.delete_file(
      current_user.id, slug, file_id, endpoint=request.url.path
    )
    return MessageResponse(message="File deleted successfully")
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("delete_file", e, current_user.id, slug)
