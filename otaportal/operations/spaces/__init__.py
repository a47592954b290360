"""Space operations: access control, upload registry and orchestration."""

from .access import (
  PERMISSION_MATRIX,
  SpaceAccess,
  SpaceAction,
  SpaceRole,
  authorize,
  can,
  has_permission,
  has_space_access,
  role_of,
)
from .members import SpaceMembershipManager
from .orchestrator import (
  CompletionResult,
  DownloadLink,
  FileListing,
  PresignResult,
  SpaceOverview,
  UploadOrchestrator,
  UploadState,
)
from .reconciliation import ReconciliationReport, reconcile_all, reconcile_space
from .registry import (
  ListQuery,
  NewUpload,
  SortField,
  SortOrder,
  UploadPage,
  UploadRegistry,
  total_pages,
)

__all__ = [
  "PERMISSION_MATRIX",
  "SpaceAccess",
  "SpaceAction",
  "SpaceRole",
  "authorize",
  "can",
  "has_permission",
  "has_space_access",
  "role_of",
  "SpaceMembershipManager",
  "CompletionResult",
  "DownloadLink",
  "FileListing",
  "PresignResult",
  "SpaceOverview",
  "UploadOrchestrator",
  "UploadState",
  "ReconciliationReport",
  "reconcile_all",
  "reconcile_space",
  "ListQuery",
  "NewUpload",
  "SortField",
  "SortOrder",
  "UploadPage",
  "UploadRegistry",
  "total_pages",
]
