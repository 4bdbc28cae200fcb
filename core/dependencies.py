from core.settings import Settings
from payments.gateway import PayPalGateway

# Settings singleton
_settings = None

# Gateway singleton, built lazily from settings
_gateway = None


def get_settings() -> Settings:
    """Dependency that provides application settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure startup() was called."
    return _settings


def init_settings():
    """Initialize settings singleton."""
    global _settings
    _settings = Settings()


def clear_settings():
    """Clear settings and gateway singletons."""
    global _settings, _gateway
    _settings = None
    _gateway = None


def get_gateway() -> PayPalGateway:
    """Dependency that provides the shared PayPal gateway."""
    global _gateway
    if _gateway is None:
        _gateway = PayPalGateway.from_settings(get_settings())
    return _gateway
