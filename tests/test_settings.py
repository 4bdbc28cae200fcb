"""
Tests for configuration loading and the plan catalog.
"""

import pytest
from pydantic import ValidationError

from core.dependencies import clear_settings, get_gateway, init_settings
from core.settings import Settings
from payments.errors import ConfigurationError
from payments.gateway import PayPalGateway


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("PAYPAL_MODE", "live")
    monkeypatch.setenv("PAYPAL_CURRENCY", "EUR")
    monkeypatch.setenv("PAYPAL_HTTP_TIMEOUT", "7.5")

    settings = Settings()

    assert settings.PAYPAL_CLIENT_ID == "test_client_id"
    assert settings.PAYPAL_MODE == "live"
    assert settings.PAYPAL_CURRENCY == "EUR"
    assert settings.PAYPAL_HTTP_TIMEOUT == 7.5
    assert settings.PAYPAL_LOG_ENABLED is False


def test_defaults(mock_settings):
    assert mock_settings.PAYPAL_MODE == "sandbox"
    assert mock_settings.PAYPAL_CURRENCY == "USD"
    assert mock_settings.PAYPAL_HTTP_TIMEOUT == 3.0
    assert mock_settings.PAYPAL_LOG_LEVEL == "DEBUG"
    assert mock_settings.PAYPAL_TOKEN_TTL == 3600


def test_missing_credentials(monkeypatch):
    monkeypatch.delenv("PAYPAL_CLIENT_ID")
    with pytest.raises(ConfigurationError):
        Settings()


def test_plan_catalog(mock_settings):
    assert mock_settings.plans["gold"] == "P-GOLD123"
    assert mock_settings.plan_id("Gold") == "P-GOLD123"

    with pytest.raises(ConfigurationError):
        mock_settings.plan_id("silver")
    with pytest.raises(ConfigurationError):
        mock_settings.plan_id("diamond")


def test_gateway_singleton():
    init_settings()
    try:
        gateway = get_gateway()
        assert isinstance(gateway, PayPalGateway)
        assert get_gateway() is gateway
    finally:
        clear_settings()


def test_currency_normalized(monkeypatch):
    monkeypatch.setenv("PAYPAL_CURRENCY", " eur ")
    assert Settings().PAYPAL_CURRENCY == "EUR"


@pytest.mark.parametrize("currency", ["DOLLARS", "U$D", ""])
def test_invalid_currency_fails_at_load(monkeypatch, currency):
    monkeypatch.setenv("PAYPAL_CURRENCY", currency)
    with pytest.raises(ValidationError):
        Settings()
