"""
Reconciliation sweep between the object store and the upload registry.

The upload protocol persists nothing until completion and deletes leave
objects behind unless purging is enabled, so the two sides drift:

- orphaned objects: stored under a space's prefix with no Upload row
- missing objects: an Upload row whose object is gone

Orphans whose key does not follow the upload key layout are also listed
in ``malformed_keys``; they were not written through the portal.

Recently written objects are skipped because their completion may still
be in flight.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from ...config.constants import RECONCILE_MIN_OBJECT_AGE_SECONDS
from ...exceptions import StorageError
from ...logger import storage_logger as logger
from ...models.iam import Space
from ..aws.s3 import SpaceStorageClient, StoredObject
from ..storage.keys import parse_key, space_prefix
from .registry import UploadRegistry


@dataclass
class ReconciliationReport:
  space_slug: str
  orphaned_objects: List[str] = field(default_factory=list)
  missing_objects: List[str] = field(default_factory=list)
  deleted_objects: List[str] = field(default_factory=list)
  malformed_keys: List[str] = field(default_factory=list)
  skipped_recent: int = 0

  @property
  def is_clean(self) -> bool:
    return not self.orphaned_objects and not self.missing_objects


def _is_recent(obj: StoredObject, cutoff: datetime) -> bool:
  if obj.last_modified is None:
    return False
  last_modified = obj.last_modified
  if last_modified.tzinfo is None:
    last_modified = last_modified.replace(tzinfo=timezone.utc)
  return last_modified > cutoff


def reconcile_space(
  space: Space,
  gateway: SpaceStorageClient,
  registry: UploadRegistry,
  delete_orphans: bool = False,
  min_age_seconds: int = RECONCILE_MIN_OBJECT_AGE_SECONDS,
  now: Optional[datetime] = None,
) -> ReconciliationReport:
  """
  Diff stored keys against registered keys for one space.

  Args:
      space: Space to sweep
      gateway: Object store gateway
      registry: Registry bound to a session
      delete_orphans: Delete orphaned objects through the gateway
      min_age_seconds: Ignore objects modified more recently than this
      now: Reference time, defaults to the current time

  Returns:
      ReconciliationReport for the space
  """
  report = ReconciliationReport(space_slug=space.slug)
  cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=min_age_seconds)

  stored = gateway.list_keys(space_prefix(space.slug))
  registered = registry.keys_for_space(space.id)
  stored_keys = {obj.key for obj in stored}

  for obj in sorted(stored, key=lambda o: o.key):
    if obj.key in registered:
      continue
    if _is_recent(obj, cutoff):
      report.skipped_recent += 1
      continue
    if parse_key(obj.key) is None:
      report.malformed_keys.append(obj.key)
    report.orphaned_objects.append(obj.key)

  report.missing_objects = sorted(registered - stored_keys)

  if delete_orphans:
    for key in report.orphaned_objects:
      try:
        gateway.delete(key)
        report.deleted_objects.append(key)
      except StorageError as e:
        logger.error(f"Failed to delete orphaned object {key}: {e.message}")

  logger.info(
    f"Reconciled space {space.slug}: {len(report.orphaned_objects)} orphaned, "
    f"{len(report.missing_objects)} missing, {len(report.deleted_objects)} deleted",
    extra={"component": "reconciliation", "action": "reconcile", "space": space.slug},
  )
  return report


def reconcile_all(
  session: Session,
  gateway: SpaceStorageClient,
  delete_orphans: bool = False,
  min_age_seconds: int = RECONCILE_MIN_OBJECT_AGE_SECONDS,
) -> List[ReconciliationReport]:
  """Run ``reconcile_space`` over every active space."""
  registry = UploadRegistry(session)
  return [
    reconcile_space(
      space,
      gateway,
      registry,
      delete_orphans=delete_orphans,
      min_age_seconds=min_age_seconds,
    )
    for space in Space.list_active(session)
  ]
