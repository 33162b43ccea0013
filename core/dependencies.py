from core.settings import Settings

# Settings singleton
_settings = None


def get_settings() -> Settings:
    """Provide the bridge settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure build_plugins() was called."
    return _settings


def init_settings(**overrides):
    """Initialize settings singleton."""
    global _settings
    _settings = Settings(**overrides)


def clear_settings():
    """Clear settings singleton."""
    global _settings
    _settings = None
