"""Tests for session token creation and verification."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt
import pytest

from otaportal.config import EnvConfig, get_config
from otaportal.exceptions import ConfigurationError
from otaportal.middleware.auth.jwt import (
  JWT_ALGORITHM,
  JWTConfig,
  create_jwt_token,
  decode_jwt_token,
  verify_jwt_token,
)


def encode(payload, secret=None):
  return jwt.encode(
    payload, secret or get_config().JWT_SECRET_KEY, algorithm=JWT_ALGORITHM
  )


def claims(**overrides):
  config = get_config()
  now = datetime.now(timezone.utc)
  payload = {
    "user_id": "usr_123",
    "exp": now + timedelta(hours=1),
    "iat": now,
    "iss": config.JWT_ISSUER,
    "aud": config.JWT_AUDIENCE,
  }
  payload.update(overrides)
  return {k: v for k, v in payload.items() if v is not None}


@pytest.mark.unit
class TestCreateToken:
  def test_round_trip(self):
    token = create_jwt_token("usr_123")
    payload = decode_jwt_token(token)
    assert payload["user_id"] == "usr_123"
    assert payload["iss"] == get_config().JWT_ISSUER
    assert "jti" in payload

  def test_tokens_are_unique(self):
    assert create_jwt_token("usr_123") != create_jwt_token("usr_123")

  def test_custom_lifetime(self):
    payload = decode_jwt_token(create_jwt_token("usr_123", expires_in_hours=2))
    assert payload["exp"] - payload["iat"] == 2 * 3600


@pytest.mark.unit
class TestVerifyToken:
  def test_valid(self):
    assert verify_jwt_token(encode(claims())) == "usr_123"

  def test_expired(self):
    expired = claims(exp=datetime.now(timezone.utc) - timedelta(seconds=5))
    assert verify_jwt_token(encode(expired)) is None
    with pytest.raises(jwt.ExpiredSignatureError):
      decode_jwt_token(encode(expired))

  def test_wrong_secret(self):
    other_secret = "another-secret-key-0123456789abcdef"
    assert verify_jwt_token(encode(claims(), secret=other_secret)) is None

  def test_wrong_audience(self):
    assert verify_jwt_token(encode(claims(aud="someone-else"))) is None

  def test_wrong_issuer(self):
    assert verify_jwt_token(encode(claims(iss="rogue"))) is None

  def test_missing_exp(self):
    payload = claims()
    del payload["exp"]
    assert verify_jwt_token(encode(payload)) is None

  def test_missing_user_id(self):
    payload = claims()
    del payload["user_id"]
    assert verify_jwt_token(encode(payload)) is None

  def test_garbage(self):
    assert verify_jwt_token("not-a-token") is None

  def test_rejects_unsigned_tokens(self):
    token = jwt.encode(claims(), key=None, algorithm="none")
    assert verify_jwt_token(token) is None


@pytest.mark.unit
class TestJWTConfig:
  def test_missing_secret(self):
    with patch(
      "otaportal.middleware.auth.jwt.get_config",
      return_value=EnvConfig(JWT_SECRET_KEY=""),
    ):
      with pytest.raises(ConfigurationError):
        JWTConfig.get_jwt_secret()
