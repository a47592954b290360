import os

# Settings must be in place before any otaportal module builds the config
# or the engine.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["S3_BUCKET_NAME"] = "test-ota-bucket"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-0123456789abcdef"
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from otaportal.database import Base, SessionFactory, engine, get_db_session
from otaportal.exceptions import StoredObjectNotFoundError
from otaportal.middleware.auth.dependencies import get_current_user
from otaportal.models.iam import Space, SpaceMember, Upload, User
from otaportal.operations.aws.s3 import (
  ObjectMetadata,
  PresignedUpload,
  StoredObject,
  get_storage_client,
)
from otaportal.operations.spaces.orchestrator import issued_keys
from main import app


class FakeStorageGateway:
  """In-memory stand-in for SpaceStorageClient."""

  def __init__(self, expires_in: int = 3600):
    self.expires_in = expires_in
    self.objects: Dict[str, dict] = {}
    self.deleted: List[str] = []
    self.presigned_uploads: List[dict] = []

  def put(
    self,
    key: str,
    size: int = 1024,
    content_type: str = "application/zip",
    last_modified: Optional[datetime] = None,
  ) -> None:
    self.objects[key] = {
      "size": size,
      "content_type": content_type,
      "last_modified": last_modified or datetime.now(timezone.utc),
    }

  def presign_upload(self, key, content_type, original_filename, space_slug):
    self.presigned_uploads.append(
      {
        "key": key,
        "content_type": content_type,
        "original_filename": original_filename,
        "space_slug": space_slug,
      }
    )
    return PresignedUpload(
      url=f"https://test-ota-bucket.s3.amazonaws.com/{key}?X-Amz-Signature=put",
      expires_in=self.expires_in,
    )

  def presign_download(self, key, download_filename):
    return f"https://test-ota-bucket.s3.amazonaws.com/{key}?X-Amz-Signature=get&filename={download_filename}"

  def exists(self, key):
    return key in self.objects

  def get_metadata(self, key):
    if key not in self.objects:
      raise StoredObjectNotFoundError(key)
    obj = self.objects[key]
    return ObjectMetadata(
      size=obj["size"],
      content_type=obj["content_type"],
      etag="d41d8cd98f00b204e9800998ecf8427e",
      last_modified=obj["last_modified"],
    )

  def delete(self, key):
    self.deleted.append(key)
    self.objects.pop(key, None)

  def list_keys(self, prefix):
    return [
      StoredObject(key=key, size=obj["size"], last_modified=obj["last_modified"])
      for key, obj in sorted(self.objects.items())
      if key.startswith(prefix)
    ]


@pytest.fixture(scope="session", autouse=True)
def create_schema():
  """Create all tables once in the in-memory database."""
  Base.metadata.create_all(bind=engine)
  yield
  Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clear_issued_keys():
  """Presigned keys are remembered per process; start every test empty."""
  issued_keys.clear()
  yield
  issued_keys.clear()


@pytest.fixture
def test_db():
  """A database session; every table is emptied after the test."""
  db = SessionFactory()
  try:
    yield db
  finally:
    db.rollback()
    for table in reversed(Base.metadata.sorted_tables):
      db.execute(table.delete())
    db.commit()
    db.close()


@pytest.fixture
def db_session(test_db):
  """Alias for test_db."""
  return test_db


@pytest.fixture
def fake_storage():
  return FakeStorageGateway()


@pytest.fixture
def make_user(test_db):
  counter = {"n": 0}

  def _make(email: Optional[str] = None, name: Optional[str] = None) -> User:
    counter["n"] += 1
    return User.create(
      email=email or f"user{counter['n']}@example.com",
      name=name or f"User {counter['n']}",
      session=test_db,
    )

  return _make


@pytest.fixture
def owner(make_user):
  return make_user("owner@example.com", "Space Owner")


@pytest.fixture
def admin_user(make_user):
  return make_user("admin@example.com", "Space Admin")


@pytest.fixture
def member_user(make_user):
  return make_user("member@example.com", "Space Member")


@pytest.fixture
def outsider(make_user):
  return make_user("outsider@example.com", "Other Tenant")


@pytest.fixture
def space(test_db, owner, admin_user, member_user):
  """Space 'acme' with an owner, an admin and a member."""
  acme = Space.create(
    name="Acme Devices", slug="acme", description="Acme OTA images", session=test_db
  )
  SpaceMember.create(acme.id, owner.id, "owner", session=test_db)
  SpaceMember.create(acme.id, admin_user.id, "admin", session=test_db)
  SpaceMember.create(acme.id, member_user.id, "member", session=test_db)
  return acme


@pytest.fixture
def other_space(test_db, outsider):
  """Space 'globex' owned by a user with no access to 'acme'."""
  globex = Space.create(name="Globex", slug="globex", session=test_db)
  SpaceMember.create(globex.id, outsider.id, "owner", session=test_db)
  return globex


@pytest.fixture
def make_upload(test_db):
  counter = {"n": 0}

  def _make(
    space: Space,
    user: User,
    filename: str = "firmware.zip",
    s3_key: Optional[str] = None,
    file_size: int = 1024,
    uploaded_at: Optional[datetime] = None,
    **fields,
  ) -> Upload:
    counter["n"] += 1
    timestamp_ms = 1_700_000_000_000 + counter["n"]
    upload = Upload(
      space_id=space.id,
      filename=filename,
      s3_key=s3_key or f"uploads/{space.slug}/{timestamp_ms}-{filename}",
      file_size=file_size,
      content_type=fields.pop("content_type", "application/zip"),
      uploaded_by=user.id,
      uploaded_at=uploaded_at or datetime.now(timezone.utc),
      **fields,
    )
    test_db.add(upload)
    test_db.commit()
    test_db.refresh(upload)
    return upload

  return _make


class _CurrentUser:
  def __init__(self):
    self.user: Optional[User] = None

  def __call__(self) -> User:
    if self.user is None:
      raise HTTPException(status_code=401, detail="Authentication required")
    return self.user


@pytest.fixture
def client(test_db, fake_storage):
  """
  TestClient with the database, object store and caller overridden.

  Call ``client.act_as(user)`` to choose the authenticated user; without it
  every protected route answers 401.
  """
  current = _CurrentUser()

  def override_get_db():
    yield test_db

  app.dependency_overrides[get_db_session] = override_get_db
  app.dependency_overrides[get_storage_client] = lambda: fake_storage
  app.dependency_overrides[get_current_user] = current

  test_client = TestClient(app)
  test_client.act_as = lambda user: setattr(current, "user", user)
  test_client.storage = fake_storage
  yield test_client

  app.dependency_overrides = {}


@pytest.fixture
def token_client(test_db, fake_storage):
  """TestClient that keeps real session-token authentication."""

  def override_get_db():
    yield test_db

  app.dependency_overrides[get_db_session] = override_get_db
  app.dependency_overrides[get_storage_client] = lambda: fake_storage

  yield TestClient(app)

  app.dependency_overrides = {}
