"""Dependencies and serializers shared by the space routers."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...database import get_db_session
from ...logger import api_logger
from ...models.api.spaces import FileDetail, FileItem, MemberItem, SpaceRef, UserIdentity
from ...models.iam import Space, SpaceMember, Upload
from ...operations.aws.s3 import SpaceStorageClient, get_storage_client
from ...operations.spaces import SpaceMembershipManager, UploadOrchestrator


def get_upload_orchestrator(
  db: Session = Depends(get_db_session),
  storage: SpaceStorageClient = Depends(get_storage_client),
) -> UploadOrchestrator:
  return UploadOrchestrator(db, storage)


def get_membership_manager(
  db: Session = Depends(get_db_session),
) -> SpaceMembershipManager:
  return SpaceMembershipManager(db)


def space_ref(space: Space) -> SpaceRef:
  return SpaceRef(**space.to_summary())


def file_item(upload: Upload) -> FileItem:
  uploader = upload.uploader
  return FileItem(
    id=upload.id,
    filename=upload.filename,
    s3Key=upload.s3_key,
    fileSize=upload.file_size,
    contentType=upload.content_type,
    md5Hash=upload.md5_hash,
    description=upload.description,
    changelog=upload.changelog,
    version=upload.version,
    uploadedAt=upload.uploaded_at,
    uploadedBy=UserIdentity(**uploader.to_identity()) if uploader else None,
  )


def file_detail(upload: Upload) -> FileDetail:
  return FileDetail(**file_item(upload).model_dump(), space=space_ref(upload.space))


def member_item(member: SpaceMember) -> MemberItem:
  return MemberItem(
    userId=member.user_id,
    name=member.user.name if member.user else None,
    email=member.user.email if member.user else "",
    role=member.role,
    joinedAt=member.created_at,
  )


def internal_error(
  action: str, error: Exception, user_id: str, space_slug: str
) -> HTTPException:
  """Log an unexpected failure and build the generic 500 for it."""
  api_logger.error(
    f"Unexpected error during {action}: {type(error).__name__}",
    exc_info=True,
    extra={
      "component": "spaces_api",
      "action": f"{action}_failed",
      "user_id": user_id,
      "space": space_slug,
      "error": type(error).__name__,
    },
  )
  return HTTPException(
    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    detail=f"Failed to {action.replace('_', ' ')}",
  )
