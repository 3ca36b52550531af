"""认证工具测试 -- bcrypt 与 JWT"""

from datetime import timedelta

import jwt
import pytest
from pydantic import SecretStr

from flowdesk.core.timeutil import utc_now
from flowdesk.gateway.security import (
    AuthConfig,
    create_access_token,
    decode_access_token,
    hash_password,
    load_auth_config,
    verify_password,
)

CONFIG = AuthConfig(jwt_secret=SecretStr("unit-test-secret"))


class TestPasswordHashing:
    """bcrypt"""

    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert hashed.startswith("$2")
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_long_password_truncated_to_72_bytes(self):
        base = "a" * 72
        hashed = hash_password(base + "tail-one")
        assert verify_password(base + "tail-two", hashed)

    def test_invalid_hash(self):
        assert not verify_password("secret123", "")
        assert not verify_password("secret123", "not-bcrypt")


class TestAccessToken:
    """HS256 JWT"""

    def test_roundtrip(self):
        token = create_access_token("user-1", CONFIG)
        assert decode_access_token(token, CONFIG) == "user-1"

    def test_payload_claims(self):
        now = utc_now().replace(microsecond=0)
        token = create_access_token("user-1", CONFIG, now=now)
        payload = jwt.decode(token, "unit-test-secret", algorithms=["HS256"])
        assert payload["sub"] == "user-1"
        assert payload["exp"] - payload["iat"] == int(timedelta(days=30).total_seconds())

    def test_expired(self):
        token = create_access_token("user-1", CONFIG, now=utc_now() - timedelta(days=31))
        assert decode_access_token(token, CONFIG) is None

    def test_wrong_secret(self):
        token = create_access_token("user-1", AuthConfig(jwt_secret=SecretStr("other")))
        assert decode_access_token(token, CONFIG) is None

    def test_missing_sub(self):
        token = jwt.encode({"exp": utc_now() + timedelta(days=1)}, "unit-test-secret")
        assert decode_access_token(token, CONFIG) is None


class TestLoadAuthConfig:
    """环境变量加载"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for key in [
            "FLOWDESK_JWT_SECRET",
            "FLOWDESK_TOKEN_TTL_DAYS",
            "FLOWDESK_ADMIN_EMAIL",
            "FLOWDESK_ADMIN_PASSWORD",
        ]:
            monkeypatch.delenv(key, raising=False)

    def test_defaults(self):
        config = load_auth_config()
        assert config.jwt_secret.get_secret_value() == "change-me"
        assert config.token_ttl_days == 30
        assert not config.bootstrap_enabled

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FLOWDESK_JWT_SECRET", "s3cret")
        monkeypatch.setenv("FLOWDESK_TOKEN_TTL_DAYS", "7")
        monkeypatch.setenv("FLOWDESK_ADMIN_EMAIL", "Boss@FlowDesk.test")
        monkeypatch.setenv("FLOWDESK_ADMIN_PASSWORD", "pw")
        config = load_auth_config()
        assert config.jwt_secret.get_secret_value() == "s3cret"
        assert config.token_ttl_days == 7
        assert config.admin_email == "boss@flowdesk.test"
        assert config.bootstrap_enabled

    def test_invalid_ttl(self, monkeypatch):
        monkeypatch.setenv("FLOWDESK_TOKEN_TTL_DAYS", "forever")
        assert load_auth_config().token_ttl_days == 30
