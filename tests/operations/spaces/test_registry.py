"""Tests for the upload registry."""

from datetime import datetime, timedelta, timezone

import pytest

from otaportal.exceptions import DuplicateUploadKeyError, ValidationError
from otaportal.operations.spaces.registry import (
  ListQuery,
  NewUpload,
  SortField,
  SortOrder,
  UploadRegistry,
  total_pages,
)


@pytest.fixture
def registry(test_db):
  return UploadRegistry(test_db)


def new_upload(space, user, key, filename="fw.zip", **fields):
  return NewUpload(
    space_id=space.id,
    filename=filename,
    s3_key=key,
    file_size=fields.pop("file_size", 1024),
    content_type="application/zip",
    uploaded_by=user.id,
    **fields,
  )


@pytest.mark.unit
class TestTotalPages:
  @pytest.mark.parametrize(
    "total,limit,expected",
    [(0, 20, 0), (1, 20, 1), (20, 20, 1), (21, 20, 2), (45, 10, 5)],
  )
  def test_ceiling(self, total, limit, expected):
    assert total_pages(total, limit) == expected


@pytest.mark.unit
class TestListQuery:
  def test_defaults(self):
    query = ListQuery()
    assert query.page == 1
    assert query.limit == 20
    assert query.sort_by == SortField.UPLOADED_AT
    assert query.sort_order == SortOrder.DESC

  def test_coerces_strings(self):
    query = ListQuery(sort_by="filename", sort_order="asc")
    assert query.sort_by is SortField.FILENAME
    assert query.sort_order is SortOrder.ASC

  @pytest.mark.parametrize(
    "kwargs,field",
    [
      ({"page": 0}, "page"),
      ({"limit": 0}, "limit"),
      ({"limit": 101}, "limit"),
      ({"search": "x" * 101}, "search"),
    ],
  )
  def test_rejects_out_of_range(self, kwargs, field):
    with pytest.raises(ValidationError) as exc_info:
      ListQuery(**kwargs)
    assert exc_info.value.details["field"] == field


@pytest.mark.unit
class TestCreate:
  def test_create_and_fetch(self, registry, space, member_user):
    upload = registry.create(
      new_upload(
        space,
        member_user,
        "uploads/acme/1-fw.zip",
        version="1.2.0",
        md5_hash="d41d8cd98f00b204e9800998ecf8427e",
      )
    )

    assert upload.id.startswith("upl_")
    assert registry.get_by_id(upload.id).s3_key == "uploads/acme/1-fw.zip"
    fetched = registry.get_by_key("uploads/acme/1-fw.zip")
    assert fetched.id == upload.id
    assert fetched.uploader.email == "member@example.com"
    assert fetched.version == "1.2.0"

  def test_duplicate_key(self, registry, space, member_user):
    registry.create(new_upload(space, member_user, "uploads/acme/1-fw.zip"))
    with pytest.raises(DuplicateUploadKeyError):
      registry.create(new_upload(space, member_user, "uploads/acme/1-fw.zip"))

    # the failed insert must leave the session usable
    assert len(registry.keys_for_space(space.id)) == 1

  def test_delete(self, registry, space, member_user):
    upload = registry.create(new_upload(space, member_user, "uploads/acme/1-fw.zip"))
    registry.delete(upload.id)
    assert registry.get_by_id(upload.id) is None

  def test_delete_missing_is_noop(self, registry):
    registry.delete("upl_missing")


@pytest.mark.unit
class TestList:
  @pytest.fixture
  def uploads(self, space, other_space, member_user, outsider, make_upload):
    now = datetime.now(timezone.utc)
    return [
      make_upload(
        space,
        member_user,
        "alpha.zip",
        file_size=300,
        uploaded_at=now - timedelta(days=3),
        description="Stable release",
        version="1.0.0",
      ),
      make_upload(
        space,
        member_user,
        "beta.zip",
        file_size=100,
        uploaded_at=now - timedelta(days=2),
        description="Beta channel",
        version="1.1.0-beta",
      ),
      make_upload(
        space,
        member_user,
        "gamma_100%.bin",
        file_size=200,
        uploaded_at=now - timedelta(days=1),
        version="2.0.0",
      ),
      make_upload(other_space, outsider, "alpha.zip"),
    ]

  def test_scoped_to_space_newest_first(self, registry, space, uploads):
    page = registry.list(space.id)
    assert page.total == 3
    assert [u.filename for u in page.items] == [
      "gamma_100%.bin",
      "beta.zip",
      "alpha.zip",
    ]

  def test_sort_by_size_ascending(self, registry, space, uploads):
    page = registry.list(space.id, ListQuery(sort_by="fileSize", sort_order="asc"))
    assert [u.file_size for u in page.items] == [100, 200, 300]

  def test_sort_by_filename(self, registry, space, uploads):
    page = registry.list(space.id, ListQuery(sort_by="filename", sort_order="asc"))
    assert [u.filename for u in page.items][0] == "alpha.zip"

  def test_search_matches_filename_description_and_version(
    self, registry, space, uploads
  ):
    assert registry.list(space.id, ListQuery(search="alpha")).total == 1
    assert registry.list(space.id, ListQuery(search="CHANNEL")).total == 1
    assert registry.list(space.id, ListQuery(search="2.0")).total == 1

  def test_search_treats_wildcards_literally(self, registry, space, uploads):
    page = registry.list(space.id, ListQuery(search="100%"))
    assert [u.filename for u in page.items] == ["gamma_100%.bin"]
    assert registry.list(space.id, ListQuery(search="%")).total == 1

  def test_blank_search_is_ignored(self, registry, space, uploads):
    assert registry.list(space.id, ListQuery(search="   ")).total == 3

  def test_pagination(self, registry, space, uploads):
    first = registry.list(space.id, ListQuery(page=1, limit=2))
    second = registry.list(space.id, ListQuery(page=2, limit=2))
    beyond = registry.list(space.id, ListQuery(page=5, limit=2))

    assert first.total == 3
    assert first.total_pages == 2
    assert len(first.items) == 2
    assert len(second.items) == 1
    assert beyond.items == []
    assert beyond.total == 3

  def test_empty_space(self, registry, other_space):
    other_page = registry.list(other_space.id, ListQuery(search="nothing"))
    assert other_page.total == 0
    assert other_page.total_pages == 0

  def test_recent_and_keys(self, registry, space, uploads):
    recent = registry.recent(space.id, limit=2)
    assert [u.filename for u in recent] == ["gamma_100%.bin", "beta.zip"]
    assert registry.keys_for_space(space.id) == {u.s3_key for u in uploads[:3]}
