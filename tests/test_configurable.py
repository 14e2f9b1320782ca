"""Unit tests for servicecall.configurable.

Tests cover:
- Defaults, environment overrides and configure() overrides
- Subclasses sharing, then diverging from, the parent's configuration
- Error cases: no Settings, unknown keys
- reset_config()
"""

import pytest
from pydantic import ValidationError

from servicecall import ConfigurationError, ServiceCall, ServiceSettings


class FetchInvoice(ServiceCall):
    class Settings(ServiceSettings):
        base_url: str = "https://billing.example.com"
        timeout: float = 5.0

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id

    def call(self):
        config = self.config()
        return f"{config.base_url}/invoices/{self.invoice_id}?timeout={config.timeout}"


class FetchDraftInvoice(FetchInvoice):
    pass


@pytest.mark.unit
class TestConfig:
    def test_defaults(self):
        config = FetchInvoice.config()
        assert config.base_url == "https://billing.example.com"
        assert config.timeout == 5.0

    def test_instance_is_cached(self):
        assert FetchInvoice.config() is FetchInvoice.config()

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("SERVICECALL_TIMEOUT", "2.5")
        assert FetchInvoice.config().timeout == 2.5

    def test_configure_overrides_are_read_by_call(self):
        FetchInvoice.configure(base_url="https://sandbox.example.com")
        service = FetchInvoice.invoke("42")
        assert service.response == "https://sandbox.example.com/invoices/42?timeout=5.0"

    def test_configure_keeps_unspecified_values(self):
        FetchInvoice.configure(timeout=1.0)
        FetchInvoice.configure(base_url="https://other.example.com")
        config = FetchInvoice.config()
        assert config.timeout == 1.0
        assert config.base_url == "https://other.example.com"

    def test_config_is_frozen(self):
        with pytest.raises(ValidationError):
            FetchInvoice.config().timeout = 9.0

    def test_reset_config_restores_defaults(self):
        FetchInvoice.configure(timeout=1.0)
        FetchInvoice.reset_config()
        assert FetchInvoice.config().timeout == 5.0


@pytest.mark.unit
class TestInheritance:
    def test_subclass_shares_parent_configuration(self):
        FetchInvoice.configure(timeout=3.0)
        assert FetchDraftInvoice.config() is FetchInvoice.config()

    def test_configuring_subclass_does_not_touch_parent(self):
        FetchInvoice.configure(timeout=3.0)
        FetchDraftInvoice.configure(base_url="https://drafts.example.com")

        assert FetchDraftInvoice.config().timeout == 3.0
        assert FetchDraftInvoice.config().base_url == "https://drafts.example.com"
        assert FetchInvoice.config().base_url == "https://billing.example.com"

    def test_subclass_with_own_settings_is_independent(self):
        class FetchCreditNote(FetchInvoice):
            class Settings(ServiceSettings):
                base_url: str = "https://credit.example.com"

        FetchInvoice.configure(base_url="https://changed.example.com")
        assert FetchCreditNote.config().base_url == "https://credit.example.com"


@pytest.mark.unit
class TestConfigErrors:
    def test_service_without_settings(self):
        class Plain(ServiceCall):
            abstract_class = True

        with pytest.raises(ConfigurationError, match="declares no Settings"):
            Plain.config()
        with pytest.raises(ConfigurationError):
            Plain.configure(x=1)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="unknown configuration keys"):
            FetchInvoice.configure(retries=3)

    def test_invalid_value_raises_pydantic_error(self):
        with pytest.raises(ValidationError):
            FetchInvoice.configure(timeout="soon")
