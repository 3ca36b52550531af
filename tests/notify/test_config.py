"""邮件通知配置加载测试"""

import pytest

from flowdesk.notify import (
    BrevoEmailClient,
    LogEmailSender,
    create_email_sender,
    load_notify_config,
)

_ENV_KEYS = [
    "FLOWDESK_EMAIL_MODE",
    "BREVO_API_KEY",
    "FLOWDESK_SENDER_NAME",
    "FLOWDESK_SENDER_EMAIL",
    "FLOWDESK_APP_URL",
    "FLOWDESK_EMAIL_TIMEOUT_S",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadNotifyConfig:
    """环境变量加载"""

    def test_missing_key_downgrades_to_log(self):
        config = load_notify_config()
        assert config.email_mode == "log"
        assert isinstance(create_email_sender(config), LogEmailSender)

    def test_brevo_with_key(self, monkeypatch):
        monkeypatch.setenv("BREVO_API_KEY", "xkeysib-123")
        monkeypatch.setenv("FLOWDESK_SENDER_EMAIL", "team@flowdesk.example")
        monkeypatch.setenv("FLOWDESK_APP_URL", "https://flowdesk.example")
        config = load_notify_config()
        assert config.email_mode == "brevo"
        assert config.brevo_api_key.get_secret_value() == "xkeysib-123"
        assert config.sender_name == "FlowDesk App"
        assert config.sender_email == "team@flowdesk.example"
        assert config.app_url == "https://flowdesk.example"
        assert isinstance(create_email_sender(config), BrevoEmailClient)

    def test_explicit_log_mode(self, monkeypatch):
        monkeypatch.setenv("BREVO_API_KEY", "xkeysib-123")
        monkeypatch.setenv("FLOWDESK_EMAIL_MODE", "log")
        assert load_notify_config().email_mode == "log"

    def test_invalid_timeout_falls_back(self, monkeypatch):
        monkeypatch.setenv("FLOWDESK_EMAIL_TIMEOUT_S", "soon")
        assert load_notify_config().timeout_s == 10

    def test_api_key_not_in_repr(self, monkeypatch):
        monkeypatch.setenv("BREVO_API_KEY", "xkeysib-secret")
        assert "xkeysib-secret" not in repr(load_notify_config())


class TestLogEmailSender:
    """离线发信"""

    async def test_records_message(self):
        from flowdesk.notify import EmailMessage

        sender = LogEmailSender()
        result = await sender.send(
            EmailMessage(to_email="a@flowdesk.test", subject="s", html_content="<p/>")
        )
        assert result.provider == "log"
        assert [m.to_email for m in sender.sent] == ["a@flowdesk.test"]
