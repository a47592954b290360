"""
S3 gateway for space uploads.

All binary payloads bypass the API: clients PUT and GET directly against
presigned URLs issued here. The gateway never checks which space a key
belongs to; callers validate keys with the key policy first.

Every call is a single network round trip bounded by the configured
connect/read timeouts. Nothing is retried here; retry policy belongs to
the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...config import EnvConfig, get_config
from ...exceptions import StorageError, StoredObjectNotFoundError
from ...logger import storage_logger as logger

NOT_FOUND_ERROR_CODES = {"404", "NoSuchKey", "NotFound"}
SECURITY_ERROR_CODES = {"AccessDenied", "UnauthorizedAccess", "403"}


@dataclass(frozen=True)
class PresignedUpload:
  """A presigned PUT target."""

  url: str
  expires_in: int


@dataclass(frozen=True)
class ObjectMetadata:
  """Result of a HEAD on a stored object."""

  size: int
  content_type: Optional[str]
  etag: Optional[str]
  last_modified: Optional[datetime]
  metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredObject:
  """One entry of a prefix listing."""

  key: str
  size: int
  last_modified: Optional[datetime]


def _error_code(error: ClientError) -> str:
  return str(error.response.get("Error", {}).get("Code", ""))


def _content_disposition(filename: str) -> str:
  safe_name = filename.replace("\\", "_").replace('"', "_")
  return f'attachment; filename="{safe_name}"'


class SpaceStorageClient:
  """
  Object store gateway for space uploads.

  Wraps a boto3 S3 client bound to one bucket. Credentials come from the
  task IAM role in prod/staging and from the S3 access keys elsewhere.
  """

  def __init__(
    self,
    bucket_name: Optional[str] = None,
    config: Optional[EnvConfig] = None,
    s3_client: Any = None,
  ):
    """
    Initialize the gateway.

    Args:
        bucket_name: Bucket holding uploads (defaults to S3_BUCKET_NAME)
        config: Configuration to read from (defaults to the process config)
        s3_client: Pre-built boto3 client, mainly for tests
    """
    self.config = config or get_config()
    self.bucket_name = bucket_name or self.config.S3_BUCKET_NAME
    self.expires_in = self.config.PRESIGNED_URL_EXPIRY_SECONDS

    if s3_client is not None:
      self.s3_client = s3_client
    else:
      client_config = Config(
        connect_timeout=self.config.S3_CONNECT_TIMEOUT,
        read_timeout=self.config.S3_READ_TIMEOUT,
        retries={"mode": "standard", "max_attempts": 1},
        signature_version="s3v4",
      )
      if self.config.is_aws_environment():
        logger.debug("Using IAM role for S3 access")
      self.s3_client = boto3.client(
        "s3", config=client_config, **self.config.get_s3_config()
      )

    logger.debug(f"Initialized SpaceStorageClient for bucket {self.bucket_name}")

  def presign_upload(
    self,
    key: str,
    content_type: str,
    original_filename: str,
    space_slug: str,
  ) -> PresignedUpload:
    """
    Issue a presigned PUT URL for ``key``.

    The object is tagged with the original filename, the request time and
    the owning space slug. The client must send the same Content-Type.
    """
    try:
      url = self.s3_client.generate_presigned_url(
        "put_object",
        Params={
          "Bucket": self.bucket_name,
          "Key": key,
          "ContentType": content_type,
          "Metadata": {
            "original-filename": original_filename,
            "upload-timestamp": datetime.now(timezone.utc).isoformat(),
            "space-slug": space_slug,
          },
        },
        ExpiresIn=self.expires_in,
      )
    except (ClientError, BotoCoreError) as e:
      logger.error(f"Failed to presign upload for {key}: {e}")
      raise StorageError("presign_upload", str(e), key=key)

    logger.info(
      f"Presigned upload URL issued for {key}",
      extra={"component": "storage", "action": "presign_upload", "s3_key": key},
    )
    return PresignedUpload(url=url, expires_in=self.expires_in)

  def presign_download(self, key: str, download_filename: str) -> str:
    """Issue a presigned GET URL that downloads as ``download_filename``."""
    try:
      return self.s3_client.generate_presigned_url(
        "get_object",
        Params={
          "Bucket": self.bucket_name,
          "Key": key,
          "ResponseContentDisposition": _content_disposition(download_filename),
        },
        ExpiresIn=self.expires_in,
      )
    except (ClientError, BotoCoreError) as e:
      logger.error(f"Failed to presign download for {key}: {e}")
      raise StorageError("presign_download", str(e), key=key)

  def exists(self, key: str) -> bool:
    """
    Check if an object exists.

    Returns False only when the store reports the key as missing; any
    other failure raises StorageError.
    """
    try:
      self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
      return True
    except ClientError as e:
      error_code = _error_code(e)
      if error_code in NOT_FOUND_ERROR_CODES:
        return False
      self._log_client_error("exists", key, error_code, e)
      raise StorageError("exists", str(e), key=key, aws_error_code=error_code)
    except BotoCoreError as e:
      logger.error(f"S3 unreachable checking {key}: {e}")
      raise StorageError("exists", str(e), key=key)

  def get_metadata(self, key: str) -> ObjectMetadata:
    """HEAD an object. Raises StoredObjectNotFoundError when it is absent."""
    try:
      response = self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
    except ClientError as e:
      error_code = _error_code(e)
      if error_code in NOT_FOUND_ERROR_CODES:
        raise StoredObjectNotFoundError(key)
      self._log_client_error("get_metadata", key, error_code, e)
      raise StorageError("get_metadata", str(e), key=key, aws_error_code=error_code)
    except BotoCoreError as e:
      logger.error(f"S3 unreachable reading metadata for {key}: {e}")
      raise StorageError("get_metadata", str(e), key=key)

    etag = response.get("ETag")
    return ObjectMetadata(
      size=int(response.get("ContentLength", 0)),
      content_type=response.get("ContentType"),
      etag=etag.strip('"') if etag else None,
      last_modified=response.get("LastModified"),
      metadata=response.get("Metadata", {}) or {},
    )

  def delete(self, key: str) -> None:
    """Delete an object. Deleting a missing key is not an error."""
    try:
      self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
      logger.debug(f"Deleted s3://{self.bucket_name}/{key}")
    except ClientError as e:
      error_code = _error_code(e)
      if error_code in NOT_FOUND_ERROR_CODES:
        return
      self._log_client_error("delete", key, error_code, e)
      raise StorageError("delete", str(e), key=key, aws_error_code=error_code)
    except BotoCoreError as e:
      logger.error(f"S3 unreachable deleting {key}: {e}")
      raise StorageError("delete", str(e), key=key)

  def list_keys(self, prefix: str) -> List[StoredObject]:
    """List every object under ``prefix``, following pagination."""
    objects = []
    try:
      paginator = self.s3_client.get_paginator("list_objects_v2")
      for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
        for obj in page.get("Contents", []):
          objects.append(
            StoredObject(
              key=obj["Key"],
              size=int(obj.get("Size", 0)),
              last_modified=obj.get("LastModified"),
            )
          )
    except ClientError as e:
      error_code = _error_code(e)
      self._log_client_error("list_keys", prefix, error_code, e)
      raise StorageError("list_keys", str(e), key=prefix, aws_error_code=error_code)
    except BotoCoreError as e:
      logger.error(f"S3 unreachable listing {prefix}: {e}")
      raise StorageError("list_keys", str(e), key=prefix)

    return objects

  def _log_client_error(
    self, operation: str, key: str, error_code: str, error: ClientError
  ) -> None:
    if error_code in SECURITY_ERROR_CODES:
      logger.critical(
        f"S3 SECURITY VIOLATION - {error_code}: {operation} denied for "
        f"Bucket={self.bucket_name}, Key={key}"
      )
    else:
      logger.error(f"S3 {operation} failed for {key}: {error}")


@lru_cache(maxsize=1)
def get_storage_client() -> SpaceStorageClient:
  """FastAPI dependency providing the shared object store gateway."""
  return SpaceStorageClient()
