"""Tests for prefixed ULID identifiers."""

from ulid import ULID

from otaportal.utils.ulid import (
  SPACE_PREFIX,
  UPLOAD_PREFIX,
  generate_prefixed_ulid,
  is_prefixed_ulid,
  parse_ulid,
)


class TestGeneratePrefixedUlid:
  def test_format(self):
    value = generate_prefixed_ulid(UPLOAD_PREFIX)
    prefix, body = value.split("_", 1)
    assert prefix == "upl"
    assert len(body) == 26

  def test_uniqueness(self):
    ids = {generate_prefixed_ulid(SPACE_PREFIX) for _ in range(100)}
    assert len(ids) == 100


class TestParseUlid:
  def test_round_trip(self):
    value = generate_prefixed_ulid(UPLOAD_PREFIX)
    parsed = parse_ulid(value)
    assert isinstance(parsed, ULID)
    assert str(parsed) == value.split("_", 1)[1]

  def test_without_prefix(self):
    raw = str(ULID())
    assert str(parse_ulid(raw)) == raw

  def test_invalid(self):
    assert parse_ulid("upl_missing") is None
    assert parse_ulid("") is None


class TestIsPrefixedUlid:
  def test_matching_prefix(self):
    assert is_prefixed_ulid(generate_prefixed_ulid(UPLOAD_PREFIX), UPLOAD_PREFIX)

  def test_wrong_prefix(self):
    assert not is_prefixed_ulid(generate_prefixed_ulid(SPACE_PREFIX), UPLOAD_PREFIX)

  def test_malformed(self):
    assert not is_prefixed_ulid("upl_../../etc", UPLOAD_PREFIX)
    assert not is_prefixed_ulid("", UPLOAD_PREFIX)
