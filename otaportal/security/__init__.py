"""
Security utilities for the portal.

Currently the structured security audit log used by authentication and
access control.
"""

from .audit_logger import SecurityAuditLogger, SecurityEventType

__all__ = [
  "SecurityAuditLogger",
  "SecurityEventType",
]
