"""
Custom Exception Types for the OTA portal.

Every error raised by the domain layer derives from ``PortalError`` and
carries an error code, structured details and the HTTP status it maps to.
The API layer converts them into ``ErrorResponse`` payloads in ``main.py``.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class PortalError(Exception):
  """
  Base exception for all portal application errors.

  Attributes:
      message: Human-readable error message
      error_code: Application-specific error code for categorization
      details: Additional error context and metadata
      timestamp: When the error occurred
  """

  status_code = 500

  def __init__(
    self,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
  ):
    super().__init__(message)
    self.message = message
    self.error_code = error_code or self.__class__.__name__
    self.details = details or {}
    self.timestamp = datetime.now(timezone.utc).isoformat()

  def to_dict(self) -> Dict[str, Any]:
    """Convert exception to dictionary for API responses."""
    return {
      "error": self.error_code,
      "message": self.message,
      "details": self.details,
      "timestamp": self.timestamp,
    }


# ============================================================================
# Authentication and Authorization Exceptions
# ============================================================================


class AuthenticationError(PortalError):
  """Raised when no valid session accompanies the request."""

  status_code = 401

  def __init__(self, reason: str = "Authentication required"):
    super().__init__(reason, error_code="UNAUTHENTICATED")


class AuthorizationError(PortalError):
  """Base exception for authenticated callers lacking access."""

  status_code = 403


class SpaceAccessDeniedError(AuthorizationError):
  """Raised when the caller is not a member of the space."""

  def __init__(self, space_slug: str, user_id: Optional[str] = None):
    details = {"space": space_slug}
    if user_id:
      details["user_id"] = user_id
    super().__init__(
      "You don't have access to this space",
      error_code="FORBIDDEN",
      details=details,
    )


class InsufficientPermissionsError(AuthorizationError):
  """Raised when the caller's role does not allow the action."""

  def __init__(
    self,
    action: str,
    space_slug: str,
    role: Optional[str] = None,
  ):
    details = {"action": action, "space": space_slug}
    if role:
      details["role"] = role
    super().__init__(
      f"You do not have permission to {action.replace('_', ' ')} in this space",
      error_code="INSUFFICIENT_PERMISSIONS",
      details=details,
    )


# ============================================================================
# Not Found Exceptions
# ============================================================================


class NotFoundError(PortalError):
  """Base exception for missing resources."""

  status_code = 404


class SpaceNotFoundError(NotFoundError):
  """Raised when a space does not exist or is inactive."""

  def __init__(self, space_slug: str):
    super().__init__(
      "Space not found",
      error_code="SPACE_NOT_FOUND",
      details={"space": space_slug},
    )


class UploadNotFoundError(NotFoundError):
  """Raised when an upload record is missing or belongs to another space."""

  def __init__(self, upload_id: str, space_slug: Optional[str] = None):
    details = {"upload_id": upload_id}
    message = "File not found"
    if space_slug:
      details["space"] = space_slug
      message = "File not found in this space"
    super().__init__(message, error_code="FILE_NOT_FOUND", details=details)


class StoredObjectNotFoundError(NotFoundError):
  """Raised when the object store has no object under the key."""

  def __init__(self, key: str):
    super().__init__(
      "File not found in storage. Please upload the file first.",
      error_code="OBJECT_NOT_FOUND",
      details={"s3_key": key},
    )


class UserNotFoundError(NotFoundError):
  """Raised when a referenced user does not exist."""

  def __init__(self, identifier: str):
    super().__init__(
      f"User '{identifier}' not found",
      error_code="USER_NOT_FOUND",
      details={"user": identifier},
    )


class MemberNotFoundError(NotFoundError):
  """Raised when a user has no membership in the space."""

  def __init__(self, user_id: str, space_slug: str):
    super().__init__(
      "Member not found in this space",
      error_code="MEMBER_NOT_FOUND",
      details={"user_id": user_id, "space": space_slug},
    )


# ============================================================================
# Validation and Conflict Exceptions
# ============================================================================


class ValidationError(PortalError):
  """Raised for malformed input that passed schema parsing."""

  status_code = 400

  def __init__(
    self,
    message: str,
    field: Optional[str] = None,
    error_code: str = "VALIDATION_ERROR",
    **kwargs,
  ):
    details = {"field": field} if field else {}
    details.update(kwargs)
    super().__init__(message, error_code=error_code, details=details)


class InvalidUploadKeyError(ValidationError):
  """Raised when a completion key does not belong to the space."""

  def __init__(self, key: str, space_slug: str):
    super().__init__(
      "Invalid S3 key for this space",
      field="s3Key",
      error_code="INVALID_UPLOAD_KEY",
      s3_key=key,
      space=space_slug,
    )


class ConflictError(PortalError):
  """Raised when a write collides with existing state."""

  status_code = 409

  def __init__(
    self,
    message: str,
    error_code: str = "CONFLICT",
    details: Optional[Dict[str, Any]] = None,
  ):
    super().__init__(message, error_code=error_code, details=details)


class DuplicateUploadKeyError(ConflictError):
  """Raised when an object key is already registered elsewhere."""

  def __init__(self, key: str):
    super().__init__(
      "An upload with this key is already registered",
      error_code="UPLOAD_KEY_CONFLICT",
      details={"s3_key": key},
    )


# ============================================================================
# Upstream and Configuration Exceptions
# ============================================================================


class UpstreamError(PortalError):
  """Base exception for failures of the database or object store."""

  status_code = 500

  def __init__(
    self,
    service: str,
    message: str,
    error_code: str = "UPSTREAM_FAILURE",
    **kwargs,
  ):
    details = {"service": service}
    details.update(kwargs)
    super().__init__(
      f"{service} error: {message}",
      error_code=error_code,
      details=details,
    )


class StorageError(UpstreamError):
  """Raised when an object store call fails for a reason other than absence."""

  def __init__(
    self,
    operation: str,
    message: str,
    key: Optional[str] = None,
    aws_error_code: Optional[str] = None,
  ):
    extra = {"operation": operation}
    if key:
      extra["s3_key"] = key
    if aws_error_code:
      extra["aws_error_code"] = aws_error_code
    super().__init__("S3", message, error_code="STORAGE_ERROR", **extra)


class ConfigurationError(PortalError):
  """Raised when there are configuration issues."""

  def __init__(self, config_key: str, reason: str):
    super().__init__(
      f"Configuration error for '{config_key}': {reason}",
      error_code="CONFIGURATION_ERROR",
      details={"config_key": config_key, "reason": reason},
    )
