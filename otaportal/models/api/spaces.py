"""
Request and response models for the spaces API.

Field names follow the portal's JSON contract (camelCase on the wire).
Request models reject unknown fields.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...config.constants import (
  ALLOWED_CONTENT_TYPES,
  FILENAME_PATTERN,
  MAX_CHANGELOG_LENGTH,
  MAX_DESCRIPTION_LENGTH,
  MAX_FILENAME_LENGTH,
  MAX_S3_KEY_LENGTH,
  MAX_SPACE_NAME_LENGTH,
  MAX_SPACE_SLUG_LENGTH,
  MAX_UPLOAD_SIZE_BYTES,
  MAX_VERSION_LENGTH,
  MD5_PATTERN,
  SPACE_SLUG_PATTERN,
)

ContentType = Literal[ALLOWED_CONTENT_TYPES]  # type: ignore[valid-type]
RoleName = Literal["member", "admin", "owner"]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
  if value is None:
    return None
  value = value.strip()
  return value or None


# ============================================================================
# Upload protocol
# ============================================================================


class PresignUploadRequest(BaseModel):
  """Phase 1: ask for a presigned PUT URL."""

  model_config = ConfigDict(extra="forbid")

  filename: str = Field(
    ...,
    min_length=1,
    max_length=MAX_FILENAME_LENGTH,
    pattern=FILENAME_PATTERN,
    description="File name; letters, digits, dot, underscore and hyphen only",
    examples=["firmware-v2.1.0.zip"],
  )
  contentType: ContentType = Field(
    ...,
    description="MIME type the client will send with the PUT",
    examples=["application/zip"],
  )
  fileSize: int = Field(
    ...,
    description="Size of the file in bytes (max 5 GiB)",
    examples=[10485760],
  )

  @field_validator("fileSize")
  @classmethod
  def validate_file_size(cls, v: int) -> int:
    if v <= 0:
      raise ValueError("File size must be greater than 0")
    if v > MAX_UPLOAD_SIZE_BYTES:
      raise ValueError("File size must not exceed 5 GiB")
    return v


class PresignUploadResponse(BaseModel):
  uploadUrl: str = Field(..., description="Presigned PUT URL")
  s3Key: str = Field(
    ...,
    description="Object key to send back on completion",
    examples=["uploads/acme/1717171717171-firmware-v2.1.0.zip"],
  )
  expiresIn: int = Field(..., description="Seconds until the URL expires")


class CompleteUploadRequest(BaseModel):
  """Phase 3: register an object the client has PUT."""

  model_config = ConfigDict(extra="forbid")

  s3Key: str = Field(..., min_length=1, max_length=MAX_S3_KEY_LENGTH)
  filename: str = Field(..., min_length=1, max_length=MAX_FILENAME_LENGTH)
  fileSize: int = Field(..., ge=1, description="Size of the file in bytes")
  contentType: str = Field(..., min_length=1)
  md5Hash: Optional[str] = Field(
    None,
    pattern=MD5_PATTERN,
    description="MD5 of the payload, 32 lowercase hex characters",
  )
  description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
  changelog: Optional[str] = Field(None, max_length=MAX_CHANGELOG_LENGTH)
  version: Optional[str] = Field(
    None, max_length=MAX_VERSION_LENGTH, examples=["2.1.0"]
  )

  @field_validator("description", "changelog", "version")
  @classmethod
  def normalize_optional_text(cls, v: Optional[str]) -> Optional[str]:
    return _blank_to_none(v)


class UploadSummary(BaseModel):
  id: str
  filename: str
  version: Optional[str] = None
  uploadedAt: datetime


class CompleteUploadResponse(BaseModel):
  message: str
  upload: UploadSummary


# ============================================================================
# Files
# ============================================================================


class UserIdentity(BaseModel):
  id: str
  name: Optional[str] = None
  email: str


class SpaceRef(BaseModel):
  id: str
  name: str
  slug: str


class FileItem(BaseModel):
  id: str
  filename: str
  s3Key: str
  fileSize: int
  contentType: str
  md5Hash: Optional[str] = None
  description: Optional[str] = None
  changelog: Optional[str] = None
  version: Optional[str] = None
  uploadedAt: datetime
  uploadedBy: Optional[UserIdentity] = None


class FileDetail(FileItem):
  space: SpaceRef


class Pagination(BaseModel):
  page: int
  limit: int
  total: int
  totalPages: int


class ListFilesResponse(BaseModel):
  space: SpaceRef
  files: List[FileItem]
  pagination: Pagination


class DownloadResponse(BaseModel):
  downloadUrl: str
  expiresIn: int
  filename: str


class MessageResponse(BaseModel):
  message: str


# ============================================================================
# Spaces
# ============================================================================


class SpaceListItem(BaseModel):
  id: str
  name: str
  slug: str
  description: Optional[str] = None
  role: str
  memberCount: int
  fileCount: int
  totalSize: int


class ListSpacesResponse(BaseModel):
  spaces: List[SpaceListItem]


class SpaceStats(BaseModel):
  totalFiles: int
  totalSize: int
  memberCount: int


class SpaceDetailResponse(BaseModel):
  id: str
  name: str
  slug: str
  description: Optional[str] = None
  role: str
  permissions: List[str]
  stats: SpaceStats
  recentUploads: List[FileItem]


class CreateSpaceRequest(BaseModel):
  """Administrative space creation."""

  model_config = ConfigDict(extra="forbid")

  name: str = Field(..., min_length=1, max_length=MAX_SPACE_NAME_LENGTH)
  slug: str = Field(
    ..., min_length=1, max_length=MAX_SPACE_SLUG_LENGTH, pattern=SPACE_SLUG_PATTERN
  )
  description: Optional[str] = None
  s3Prefix: Optional[str] = Field(None, pattern=r"^uploads/[a-z0-9-]+$")


# ============================================================================
# Members
# ============================================================================


class MemberItem(BaseModel):
  userId: str
  name: Optional[str] = None
  email: str
  role: str
  joinedAt: datetime


class ListMembersResponse(BaseModel):
  members: List[MemberItem]


class AddMemberRequest(BaseModel):
  model_config = ConfigDict(extra="forbid")

  email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
  role: RoleName = "member"


class UpdateMemberRoleRequest(BaseModel):
  model_config = ConfigDict(extra="forbid")

  role: RoleName
