"""Pydantic request and response models for the HTTP API."""

from .common import ErrorResponse, HealthResponse, error_responses
from .spaces import (
  AddMemberRequest,
  CompleteUploadRequest,
  CompleteUploadResponse,
  DownloadResponse,
  FileDetail,
  FileItem,
  ListFilesResponse,
  ListMembersResponse,
  ListSpacesResponse,
  MemberItem,
  MessageResponse,
  PresignUploadRequest,
  PresignUploadResponse,
  SpaceDetailResponse,
  UpdateMemberRoleRequest,
)

__all__ = [
  "ErrorResponse",
  "HealthResponse",
  "error_responses",
  "AddMemberRequest",
  "CompleteUploadRequest",
  "CompleteUploadResponse",
  "DownloadResponse",
  "FileDetail",
  "FileItem",
  "ListFilesResponse",
  "ListMembersResponse",
  "ListSpacesResponse",
  "MemberItem",
  "MessageResponse",
  "PresignUploadRequest",
  "PresignUploadResponse",
  "SpaceDetailResponse",
  "UpdateMemberRoleRequest",
]
