"""Tests for the S3 gateway, against a mocked boto3 client."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from otaportal.config import EnvConfig
from otaportal.exceptions import StorageError, StoredObjectNotFoundError
from otaportal.operations.aws.s3 import SpaceStorageClient


def client_error(code: str, operation: str = "HeadObject") -> ClientError:
  return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
  return MagicMock()


@pytest.fixture
def gateway(s3_client):
  config = EnvConfig(
    ENVIRONMENT="test",
    S3_BUCKET_NAME="fw-bucket",
    PRESIGNED_URL_EXPIRY_SECONDS=900,
  )
  return SpaceStorageClient(config=config, s3_client=s3_client)


@pytest.mark.unit
class TestPresigning:
  def test_presign_upload_params(self, gateway, s3_client):
    s3_client.generate_presigned_url.return_value = "https://signed/put"

    result = gateway.presign_upload(
      "uploads/acme/1-fw.zip", "application/zip", "fw.zip", "acme"
    )

    assert result.url == "https://signed/put"
    assert result.expires_in == 900
    args, kwargs = s3_client.generate_presigned_url.call_args
    assert args[0] == "put_object"
    params = kwargs["Params"]
    assert params["Bucket"] == "fw-bucket"
    assert params["Key"] == "uploads/acme/1-fw.zip"
    assert params["ContentType"] == "application/zip"
    assert params["Metadata"]["original-filename"] == "fw.zip"
    assert params["Metadata"]["space-slug"] == "acme"
    assert "upload-timestamp" in params["Metadata"]
    assert kwargs["ExpiresIn"] == 900

  def test_presign_download_sets_disposition(self, gateway, s3_client):
    s3_client.generate_presigned_url.return_value = "https://signed/get"

    url = gateway.presign_download("uploads/acme/1-fw.zip", 'fw "final".zip')

    assert url == "https://signed/get"
    args, kwargs = s3_client.generate_presigned_url.call_args
    assert args[0] == "get_object"
    assert (
      kwargs["Params"]["ResponseContentDisposition"]
      == 'attachment; filename="fw _final_.zip"'
    )

  def test_presign_failure_becomes_storage_error(self, gateway, s3_client):
    s3_client.generate_presigned_url.side_effect = client_error(
      "InvalidRequest", "GeneratePresignedUrl"
    )
    with pytest.raises(StorageError) as exc_info:
      gateway.presign_upload("k", "application/zip", "fw.zip", "acme")
    assert exc_info.value.details["operation"] == "presign_upload"


@pytest.mark.unit
class TestHeadOperations:
  def test_exists_true(self, gateway, s3_client):
    s3_client.head_object.return_value = {}
    assert gateway.exists("uploads/acme/1-fw.zip") is True
    s3_client.head_object.assert_called_once_with(
      Bucket="fw-bucket", Key="uploads/acme/1-fw.zip"
    )

  @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
  def test_exists_false_on_not_found(self, gateway, s3_client, code):
    s3_client.head_object.side_effect = client_error(code)
    assert gateway.exists("uploads/acme/1-fw.zip") is False

  def test_exists_raises_on_access_denied(self, gateway, s3_client):
    s3_client.head_object.side_effect = client_error("403")
    with pytest.raises(StorageError) as exc_info:
      gateway.exists("uploads/acme/1-fw.zip")
    assert exc_info.value.details["aws_error_code"] == "403"
    assert exc_info.value.status_code == 500

  def test_exists_raises_when_unreachable(self, gateway, s3_client):
    s3_client.head_object.side_effect = EndpointConnectionError(
      endpoint_url="https://s3.example"
    )
    with pytest.raises(StorageError):
      gateway.exists("uploads/acme/1-fw.zip")

  def test_get_metadata(self, gateway, s3_client):
    modified = datetime(2024, 6, 1, tzinfo=timezone.utc)
    s3_client.head_object.return_value = {
      "ContentLength": 2048,
      "ContentType": "application/zip",
      "ETag": '"abc123"',
      "LastModified": modified,
      "Metadata": {"space-slug": "acme"},
    }

    metadata = gateway.get_metadata("uploads/acme/1-fw.zip")

    assert metadata.size == 2048
    assert metadata.content_type == "application/zip"
    assert metadata.etag == "abc123"
    assert metadata.last_modified == modified
    assert metadata.metadata == {"space-slug": "acme"}

  def test_get_metadata_missing(self, gateway, s3_client):
    s3_client.head_object.side_effect = client_error("404")
    with pytest.raises(StoredObjectNotFoundError):
      gateway.get_metadata("uploads/acme/1-fw.zip")


@pytest.mark.unit
class TestDeleteAndList:
  def test_delete(self, gateway, s3_client):
    gateway.delete("uploads/acme/1-fw.zip")
    s3_client.delete_object.assert_called_once_with(
      Bucket="fw-bucket", Key="uploads/acme/1-fw.zip"
    )

  def test_delete_missing_is_not_an_error(self, gateway, s3_client):
    s3_client.delete_object.side_effect = client_error("NoSuchKey", "DeleteObject")
    gateway.delete("uploads/acme/1-fw.zip")

  def test_delete_access_denied(self, gateway, s3_client):
    s3_client.delete_object.side_effect = client_error("AccessDenied", "DeleteObject")
    with pytest.raises(StorageError):
      gateway.delete("uploads/acme/1-fw.zip")

  def test_list_keys_follows_pages(self, gateway, s3_client):
    paginator = MagicMock()
    paginator.paginate.return_value = [
      {"Contents": [{"Key": "uploads/acme/1-a.zip", "Size": 10}]},
      {"Contents": [{"Key": "uploads/acme/2-b.zip", "Size": 20}]},
      {},
    ]
    s3_client.get_paginator.return_value = paginator

    objects = gateway.list_keys("uploads/acme/")

    s3_client.get_paginator.assert_called_once_with("list_objects_v2")
    paginator.paginate.assert_called_once_with(
      Bucket="fw-bucket", Prefix="uploads/acme/"
    )
    assert [o.key for o in objects] == ["uploads/acme/1-a.zip", "uploads/acme/2-b.zip"]
    assert [o.size for o in objects] == [10, 20]
