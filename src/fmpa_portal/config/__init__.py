import os


def get_settings_module() -> str:
    """Settings module for APP_ENV (development when unset)."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "fmpa_portal.config.production"

    if env in {"test", "testing"}:
        return "fmpa_portal.config.testing"

    return "fmpa_portal.config.development"
