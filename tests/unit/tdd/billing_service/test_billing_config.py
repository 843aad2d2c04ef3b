"""
Billing Configuration Unit Tests
"""
import pytest

from core.config import BillingConfig, GatewayConfig, MessagingConfig

pytestmark = [pytest.mark.unit]


class TestGatewayConfig:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LAGO_BASE_URL", "https://lago.example.mw/")
        monkeypatch.setenv("LAGO_API_KEY", "secret")
        monkeypatch.setenv("LAGO_TIMEOUT", "12.5")
        monkeypatch.delenv("LAGO_PDF_TIMEOUT", raising=False)

        config = GatewayConfig.from_env()

        assert config.base_url == "https://lago.example.mw"
        assert config.api_key == "secret"
        assert config.timeout == 12.5
        assert config.pdf_timeout == 300.0

    def test_unparseable_timeout_falls_back(self, monkeypatch):
        monkeypatch.setenv("LAGO_TIMEOUT", "fast")

        assert GatewayConfig.from_env().timeout == 30.0

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            GatewayConfig(base_url="http://lago", pdf_timeout=0)


class TestMessagingConfig:

    def test_from_env(self, monkeypatch):
        monkeypatch.delenv("NATS_URL", raising=False)
        monkeypatch.setenv("NATS_HOST", "nats.internal")
        monkeypatch.setenv("NATS_PORT", "4333")
        monkeypatch.setenv("NATS_PUBLISH_TIMEOUT", "1.5")

        config = MessagingConfig.from_env()

        assert config.servers == ["nats://nats.internal:4333"]
        assert config.publish_timeout == 1.5


class TestBillingConfig:

    def test_defaults(self, monkeypatch):
        for name in ("SERVICE_NAME", "SERVICE_PORT", "DEFAULT_CURRENCY"):
            monkeypatch.delenv(name, raising=False)

        config = BillingConfig.from_env()

        assert config.service_name == "billing_service"
        assert config.service_port == 8216
        assert config.default_currency == "MWK"

    def test_currency_upper_cased(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCY", "zar")

        assert BillingConfig.from_env().default_currency == "ZAR"

    def test_log_level_from_logging_config(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        assert BillingConfig.from_env().log_level == "WARNING"
