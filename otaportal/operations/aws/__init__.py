"""AWS integrations."""

from .s3 import (
  ObjectMetadata,
  PresignedUpload,
  SpaceStorageClient,
  StoredObject,
  get_storage_client,
)

__all__ = [
  "ObjectMetadata",
  "PresignedUpload",
  "SpaceStorageClient",
  "StoredObject",
  "get_storage_client",
]
