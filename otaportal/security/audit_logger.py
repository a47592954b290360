"""
Security Audit Logger

Structured audit records for authentication failures, authorization
denials, cross-space key injection attempts and destructive file actions.
"""

import json
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum

from ..config import get_config
from ..logger import security_logger as logger


class SecurityEventType(Enum):
  """Security event types for audit logging."""

  AUTH_FAILURE = "auth_failure"
  AUTH_SUCCESS = "auth_success"
  AUTH_TOKEN_EXPIRED = "auth_token_expired"
  AUTH_TOKEN_INVALID = "auth_token_invalid"
  AUTHORIZATION_DENIED = "authorization_denied"
  INVALID_INPUT = "invalid_input"
  KEY_INJECTION_ATTEMPT = "key_injection_attempt"
  FILE_DELETED = "file_deleted"
  MEMBERSHIP_CHANGED = "membership_changed"


class SecurityAuditLogger:
  """Centralized security audit logging."""

  @staticmethod
  def log_security_event(
    event_type: SecurityEventType,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    endpoint: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    risk_level: str = "medium",
  ):
    """
    Log a security event with structured data.

    Args:
        event_type: Type of security event
        user_id: User identifier (if available)
        ip_address: Client IP address
        user_agent: Client user agent
        endpoint: API endpoint accessed
        details: Additional event details
        risk_level: Risk level (low, medium, high, critical)
    """
    config = get_config()
    if config.is_development() and not config.SECURITY_AUDIT_ENABLED:
      return

    audit_data = {
      "timestamp": datetime.now(timezone.utc).isoformat(),
      "event_type": event_type.value,
      "risk_level": risk_level,
      "user_id": user_id,
      "ip_address": ip_address,
      "user_agent": user_agent,
      "endpoint": endpoint,
      "details": details or {},
    }

    logger.warning(
      f"SECURITY_AUDIT: {json.dumps(audit_data, default=str)}",
      extra={"component": "security", "action": event_type.value},
    )

  @staticmethod
  def log_auth_failure(
    reason: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    endpoint: Optional[str] = None,
  ):
    """Log authentication failure."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_FAILURE,
      user_id=user_id,
      ip_address=ip_address,
      user_agent=user_agent,
      endpoint=endpoint,
      details={"failure_reason": reason},
      risk_level="high",
    )

  @staticmethod
  def log_auth_success(
    user_id: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    auth_method: str = "jwt_token",
  ):
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_SUCCESS,
      user_id=user_id,
      ip_address=ip_address,
      user_agent=user_agent,
      details={"auth_method": auth_method},
      risk_level="low",
    )

  @staticmethod
  def log_authorization_denied(
    user_id: str,
    resource: str,
    action: str,
    ip_address: Optional[str] = None,
    endpoint: Optional[str] = None,
  ):
    """Log authorization denial."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTHORIZATION_DENIED,
      user_id=user_id,
      ip_address=ip_address,
      endpoint=endpoint,
      details={"resource": resource, "action": action},
      risk_level="medium",
    )

  @staticmethod
  def log_key_injection_attempt(
    user_id: str,
    space_slug: str,
    s3_key: str,
    endpoint: Optional[str] = None,
  ):
    """Log a completion call naming a key outside the caller's space."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.KEY_INJECTION_ATTEMPT,
      user_id=user_id,
      endpoint=endpoint,
      details={"space": space_slug, "s3_key": s3_key[:200]},
      risk_level="high",
    )

  @staticmethod
  def log_file_deleted(
    user_id: str,
    space_slug: str,
    upload_id: str,
    s3_key: str,
    object_purged: bool,
  ):
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.FILE_DELETED,
      user_id=user_id,
      details={
        "space": space_slug,
        "upload_id": upload_id,
        "s3_key": s3_key,
        "object_purged": object_purged,
      },
      risk_level="low",
    )

  @staticmethod
  def log_membership_changed(
    user_id: str,
    space_slug: str,
    target_user_id: str,
    change: str,
    role: Optional[str] = None,
  ):
    """Log a membership grant, role change or revocation."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.MEMBERSHIP_CHANGED,
      user_id=user_id,
      details={
        "space": space_slug,
        "target_user_id": target_user_id,
        "change": change,
        "role": role,
      },
      risk_level="medium",
    )
