"""
Direct-to-store upload endpoints.

Upload Workflow:
1. Request presigned URL: `POST /api/spaces/{slug}/upload/presign`
2. PUT the file directly to the object store using the URL, with the same
   Content-Type
3. Register the upload: `POST /api/spaces/{slug}/upload/complete`

The API never handles file bytes. Completion verifies that the key lies in
the space's prefix and that the object exists before recording metadata;
repeating a completion for the same key returns the existing record.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request, Response, status

from ...exceptions import PortalError
from ...logger import api_logger
from ...models.api.common import error_responses
from ...models.api.spaces import (
  CompleteUploadRequest,
  CompleteUploadResponse,
  PresignUploadRequest,
  PresignUploadResponse,
  UploadSummary,
)
from ...models.iam import User
from ...middleware.auth.dependencies import get_current_user
from ...operations.spaces import UploadOrchestrator
from .common import get_upload_orchestrator, internal_error

router = APIRouter()


@router.post(
  "/{slug}/upload/presign",
  response_model=PresignUploadResponse,
  operation_id="presignSpaceUpload",
  summary="Create Upload URL",
  description="""Generate a presigned PUT URL for a new file.

**Request Body:**
- `filename`: 1-255 characters of `[A-Za-z0-9._-]`
- `contentType`: zip, gzip, tar or octet-stream
- `fileSize`: bytes, at most 5 GiB

The URL expires after one hour. Nothing is recorded until completion.""",
  responses={
    200: {
      "description": "Upload URL generated successfully",
      "content": {
        "application/json": {
          "example": {
            "uploadUrl": "https://bucket.s3.amazonaws.com/uploads/acme/1717171717171-fw.zip?X-Amz-Signature=...",
            "s3Key": "uploads/acme/1717171717171-fw.zip",
            "expiresIn": 3600,
          }
        }
      },
    },
    **error_responses(400, 401, 403, 404),
  },
)
async def presign_upload(
  request: Request,
  slug: str = Path(..., description="Space slug"),
  body: PresignUploadRequest = Body(...),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> PresignUploadResponse:
  try:
    result = orchestrator.request_upload(
      current_user.id, slug, body, endpoint=request.url.path
    )

    api_logger.info(
      "Upload URL generated",
      extra={
        "component": "spaces_api",
        "action": "upload_url_generated",
        "user_id": current_user.id,
        "space": slug,
        "s3_key": result.s3_key,
        "metadata": {"file_size": body.fileSize, "content_type": body.contentType},
      },
    )
    return PresignUploadResponse(
      uploadUrl=result.upload_url,
      s3Key=result.s3_key,
      expiresIn=result.expires_in,
    )
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("generate_upload_url", e, current_user.id, slug)


@router.post(
  "/{slug}/upload/complete",
  response_model=CompleteUploadResponse,
  status_code=status.HTTP_201_CREATED,
  operation_id="completeSpaceUpload",
  summary="Complete Upload",
  description="""Record a file that has been PUT to its presigned URL.

Returns 201 when the upload is recorded and 200 when the same key was
already recorded in this space.""",
  responses={
    200: {"description": "Upload was already recorded", "model": CompleteUploadResponse},
    **error_responses(400, 401, 403, 404, 409),
  },
)
async def complete_upload(
  request: Request,
  response: Response,
  slug: str = Path(..., description="Space slug"),
  body: CompleteUploadRequest = Body(...),
  current_user: User = Depends(get_current_user),
  orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> CompleteUploadResponse:
  try:
    result = orchestrator.complete_upload(
      current_user.id, slug, body, endpoint=request.url.path
    )
    if not result.created:
      response.status_code = status.HTTP_200_OK

    upload = result.upload
    return CompleteUploadResponse(
      message="Upload recorded successfully"
      if result.created
      else "Upload already recorded",
      upload=UploadSummary(
        id=upload.id,
        filename=upload.filename,
        version=upload.version,
        uploadedAt=upload.uploaded_at,
      ),
    )
  except (PortalError, HTTPException):
    raise
  except Exception as e:
    raise internal_error("record_upload", e, current_user.id, slug)
