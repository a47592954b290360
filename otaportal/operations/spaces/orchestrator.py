"""
Upload orchestrator.

Drives the three-phase direct-to-store upload protocol and the file
operations of a space:

  1. ``request_upload``: authorize, allocate a key, presign a PUT
  2. the client PUTs the bytes straight to the object store
  3. ``complete_upload``: verify the key and the stored object, then
     register the metadata row

A logical upload moves through ``UploadState``; only phase 3 persists
anything, so an upload abandoned after phase 1 leaves at most an orphaned
object for the reconciliation sweep.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from sqlalchemy.orm import Session

from ...config import EnvConfig, get_config
from ...config.constants import RECENT_UPLOADS_LIMIT
from ...exceptions import (
  ConflictError,
  DuplicateUploadKeyError,
  InvalidUploadKeyError,
  StorageError,
  StoredObjectNotFoundError,
  UploadNotFoundError,
)
from ...logger import api_logger as logger
from ...models.api.spaces import CompleteUploadRequest, PresignUploadRequest
from ...models.iam import Space, SpaceWithStats, Upload
from ...security import SecurityAuditLogger
from ...utils.ulid import UPLOAD_PREFIX, is_prefixed_ulid
from ..aws.s3 import SpaceStorageClient
from ..storage.keys import belongs_to_space, generate_key, is_allowed_file_type
from .access import PERMISSION_MATRIX, SpaceAction, SpaceRole, authorize
from .registry import ListQuery, NewUpload, UploadPage, UploadRegistry

MAX_KEY_ALLOCATION_ATTEMPTS = 3
MAX_ISSUED_KEYS = 10_000


class IssuedKeyLedger:
  """
  Keys this process has presigned.

  A presigned key has no Upload row and usually no object until the
  client finishes its PUT; two same-millisecond requests for one name
  are told apart here. Oldest entries are evicted past ``max_entries``.
  """

  def __init__(self, max_entries: int = MAX_ISSUED_KEYS):
    self.max_entries = max_entries
    self._keys: "OrderedDict[str, None]" = OrderedDict()
    self._lock = threading.Lock()

  def claim(self, key: str) -> bool:
    """Record ``key`` as issued; False if it was issued before."""
    with self._lock:
      if key in self._keys:
        return False
      self._keys[key] = None
      while len(self._keys) > self.max_entries:
        self._keys.popitem(last=False)
      return True

  def clear(self) -> None:
    with self._lock:
      self._keys.clear()


issued_keys = IssuedKeyLedger()


class UploadState(str, Enum):
  """Lifecycle of one logical upload."""

  REQUESTED = "requested"
  PRESIGNED = "presigned"
  STORED_EXTERNALLY = "stored_externally"
  VERIFIED = "verified"
  REGISTERED = "registered"
  FAILED = "failed"


@dataclass(frozen=True)
class PresignResult:
  upload_url: str
  s3_key: str
  expires_in: int


@dataclass(frozen=True)
class CompletionResult:
  """Registered upload and whether this call created it."""

  upload: Upload
  created: bool


@dataclass(frozen=True)
class DownloadLink:
  download_url: str
  expires_in: int
  filename: str


@dataclass(frozen=True)
class FileListing:
  space: Space
  page: UploadPage


@dataclass(frozen=True)
class SpaceOverview:
  """A space as seen by one member."""

  space: Space
  role: SpaceRole
  permissions: List[str]
  stats: dict
  recent_uploads: List[Upload]


class UploadOrchestrator:
  """
  File operations of a space on behalf of an authenticated user.

  Every public method authorizes first, so callers pass raw user ids and
  slugs. Errors surface as ``PortalError`` subclasses.
  """

  def __init__(
    self,
    session: Session,
    storage: SpaceStorageClient,
    config: Optional[EnvConfig] = None,
  ):
    self.session = session
    self.storage = storage
    self.config = config or get_config()
    self.registry = UploadRegistry(session)

  # ------------------------------------------------------------------
  # Spaces
  # ------------------------------------------------------------------

  def list_spaces(self, user_id: str) -> List[SpaceWithStats]:
    """Active spaces the user belongs to, with their role and stats."""
    return Space.list_for_user(user_id, self.session)

  def get_space(
    self, user_id: str, space_slug: str, endpoint: Optional[str] = None
  ) -> SpaceOverview:
    access = authorize(user_id, space_slug, self.session, endpoint=endpoint)
    return SpaceOverview(
      space=access.space,
      role=access.role,
      permissions=sorted(a.value for a in PERMISSION_MATRIX[access.role]),
      stats=access.space.get_stats(self.session),
      recent_uploads=self.registry.recent(
        access.space.id, limit=RECENT_UPLOADS_LIMIT
      ),
    )

  # ------------------------------------------------------------------
  # Upload protocol
  # ------------------------------------------------------------------

  def request_upload(
    self,
    user_id: str,
    space_slug: str,
    request: PresignUploadRequest,
    endpoint: Optional[str] = None,
  ) -> PresignResult:
    """
    Phase 1: issue a presigned PUT URL for a new object.

    The request model has already validated filename, content type and
    size. Nothing is persisted.
    """
    access = authorize(
      user_id, space_slug, self.session, action=SpaceAction.UPLOAD, endpoint=endpoint
    )

    if not is_allowed_file_type(request.filename):
      logger.warning(
        f"Unusual firmware extension for {request.filename} in space {space_slug}",
        extra={"component": "upload", "action": "presign", "space": space_slug},
      )

    key = self._allocate_key(access.space.slug, request.filename)
    self._transition(UploadState.REQUESTED, key, user_id, space_slug)

    presigned = self.storage.presign_upload(
      key,
      content_type=request.contentType,
      original_filename=request.filename,
      space_slug=access.space.slug,
    )
    self._transition(UploadState.PRESIGNED, key, user_id, space_slug)

    return PresignResult(
      upload_url=presigned.url, s3_key=key, expires_in=presigned.expires_in
    )

  def complete_upload(
    self,
    user_id: str,
    space_slug: str,
    request: CompleteUploadRequest,
    endpoint: Optional[str] = None,
  ) -> CompletionResult:
    """
    Phase 3: register an object the client has stored.

    Raises:
        InvalidUploadKeyError: Key lies outside the space's prefix
        DuplicateUploadKeyError: Key is registered to another space
        StoredObjectNotFoundError: Nothing stored under the key
    """
    access = authorize(
      user_id, space_slug, self.session, action=SpaceAction.UPLOAD, endpoint=endpoint
    )
    space = access.space
    key = request.s3Key

    if not belongs_to_space(key, space.slug):
      SecurityAuditLogger.log_key_injection_attempt(
        user_id=user_id, space_slug=space.slug, s3_key=key, endpoint=endpoint
      )
      self._transition(UploadState.FAILED, key, user_id, space_slug, "foreign key")
      raise InvalidUploadKeyError(key, space.slug)

    existing = self.registry.get_by_key(key)
    if existing is not None:
      return self._resolve_existing(existing, space, user_id)

    if not self.storage.exists(key):
      self._transition(UploadState.FAILED, key, user_id, space_slug, "object absent")
      raise StoredObjectNotFoundError(key)
    self._transition(UploadState.STORED_EXTERNALLY, key, user_id, space_slug)

    try:
      metadata = self.storage.get_metadata(key)
    except StoredObjectNotFoundError:
      self._transition(UploadState.FAILED, key, user_id, space_slug, "object vanished")
      raise
    if metadata.size != request.fileSize:
      logger.warning(
        f"Size mismatch for {key}: declared {request.fileSize}, stored {metadata.size}",
        extra={"component": "upload", "action": "verify", "s3_key": key},
      )
    if metadata.content_type and metadata.content_type != request.contentType:
      logger.warning(
        f"Content type mismatch for {key}: declared {request.contentType}, "
        f"stored {metadata.content_type}",
        extra={"component": "upload", "action": "verify", "s3_key": key},
      )
    self._transition(UploadState.VERIFIED, key, user_id, space_slug)

    try:
      upload = self.registry.create(
        NewUpload(
          space_id=space.id,
          filename=request.filename,
          s3_key=key,
          file_size=request.fileSize,
          content_type=request.contentType,
          uploaded_by=user_id,
          md5_hash=request.md5Hash,
          description=request.description,
          changelog=request.changelog,
          version=request.version,
        )
      )
    except DuplicateUploadKeyError:
      # A concurrent completion registered the key first.
      existing = self.registry.get_by_key(key)
      if existing is None:
        raise
      return self._resolve_existing(existing, space, user_id)

    self._transition(UploadState.REGISTERED, key, user_id, space_slug)
    return CompletionResult(upload=upload, created=True)

  # ------------------------------------------------------------------
  # Files
  # ------------------------------------------------------------------

  def list_files(
    self,
    user_id: str,
    space_slug: str,
    query: Optional[ListQuery] = None,
    endpoint: Optional[str] = None,
  ) -> FileListing:
    access = authorize(user_id, space_slug, self.session, endpoint=endpoint)
    page = self.registry.list(access.space.id, query)
    return FileListing(space=access.space, page=page)

  def get_file(
    self,
    user_id: str,
    space_slug: str,
    upload_id: str,
    endpoint: Optional[str] = None,
  ) -> Upload:
    """A file of the space; 404 when the id belongs to another space."""
    access = authorize(user_id, space_slug, self.session, endpoint=endpoint)
    return self._file_in_space(access.space, upload_id)

  def download(
    self,
    user_id: str,
    space_slug: str,
    upload_id: str,
    endpoint: Optional[str] = None,
  ) -> DownloadLink:
    """Presigned GET for a file, served under its original filename."""
    upload = self.get_file(user_id, space_slug, upload_id, endpoint=endpoint)
    url = self.storage.presign_download(upload.s3_key, upload.filename)

    logger.info(
      f"Download URL issued for {upload.id}",
      extra={
        "component": "upload",
        "action": "download",
        "user_id": user_id,
        "space": space_slug,
        "s3_key": upload.s3_key,
      },
    )
    return DownloadLink(
      download_url=url,
      expires_in=self.storage.expires_in,
      filename=upload.filename,
    )

  def delete_file(
    self,
    user_id: str,
    space_slug: str,
    upload_id: str,
    purge_object: Optional[bool] = None,
    endpoint: Optional[str] = None,
  ) -> None:
    """
    Remove a file's metadata row and, if purging, its stored object.

    Args:
        purge_object: Also delete the object; None follows
            ``DELETE_PURGES_OBJECTS``

    A failed purge is logged and left to the reconciliation sweep; the
    row is already gone at that point.
    """
    access = authorize(
      user_id, space_slug, self.session, action=SpaceAction.DELETE, endpoint=endpoint
    )
    upload = self._file_in_space(access.space, upload_id)
    s3_key = upload.s3_key

    self.registry.delete(upload.id)

    if purge_object is None:
      purge_object = self.config.DELETE_PURGES_OBJECTS

    purged = False
    if purge_object:
      try:
        self.storage.delete(s3_key)
        purged = True
      except StorageError as e:
        logger.error(
          f"Failed to purge {s3_key} after deleting {upload_id}: {e.message}",
          extra={"component": "upload", "action": "delete", "s3_key": s3_key},
        )

    SecurityAuditLogger.log_file_deleted(
      user_id=user_id,
      space_slug=space_slug,
      upload_id=upload_id,
      s3_key=s3_key,
      object_purged=purged,
    )

  # ------------------------------------------------------------------
  # Internals
  # ------------------------------------------------------------------

  def _file_in_space(self, space: Space, upload_id: str) -> Upload:
    if not is_prefixed_ulid(upload_id, UPLOAD_PREFIX):
      raise UploadNotFoundError(upload_id, space.slug)
    upload = self.registry.get_by_id(upload_id)
    if upload is None or upload.space_id != space.id:
      raise UploadNotFoundError(upload_id, space.slug)
    return upload

  def _allocate_key(self, space_slug: str, filename: str) -> str:
    """A key that is not registered, not stored and not presigned before."""
    timestamp_ms = time.time_ns() // 1_000_000
    for attempt in range(MAX_KEY_ALLOCATION_ATTEMPTS):
      key = generate_key(space_slug, filename, timestamp_ms + attempt)
      if self.registry.get_by_key(key) is not None:
        continue
      if self.storage.exists(key):
        continue
      if issued_keys.claim(key):
        return key
    raise ConflictError(
      "Could not allocate an upload key, please retry",
      error_code="UPLOAD_KEY_COLLISION",
      details={"filename": filename},
    )

  def _resolve_existing(
    self, existing: Upload, space: Space, user_id: str
  ) -> CompletionResult:
    if existing.space_id != space.id:
      self._transition(
        UploadState.FAILED, existing.s3_key, user_id, space.slug, "key owned elsewhere"
      )
      raise DuplicateUploadKeyError(existing.s3_key)

    if existing.uploaded_by != user_id:
      self._transition(
        UploadState.FAILED,
        existing.s3_key,
        user_id,
        space.slug,
        "key owned by another uploader",
      )
      raise DuplicateUploadKeyError(existing.s3_key)

    logger.info(
      f"Upload {existing.id} already registered for {existing.s3_key}",
      extra={"component": "upload", "action": "complete", "s3_key": existing.s3_key},
    )
    return CompletionResult(upload=existing, created=False)

  def _transition(
    self,
    state: UploadState,
    s3_key: str,
    user_id: str,
    space_slug: str,
    reason: Optional[str] = None,
  ) -> None:
    extra = {
      "component": "upload",
      "action": state.value,
      "user_id": user_id,
      "space": space_slug,
      "s3_key": s3_key,
    }
    if reason:
      extra["metadata"] = {"reason": reason}
    level = logger.warning if state == UploadState.FAILED else logger.info
    level(f"Upload {state.value}: {s3_key}", extra=extra)
