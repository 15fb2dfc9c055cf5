"""Startup-time helpers for safe config logging."""

from subbridge.common.config import Settings
from subbridge.common.logging import logger

SECRET_MARKERS = ("key", "secret", "password", "token")


def _safe_value(name: str, value: object) -> str:
    """Render one setting, hiding secret-like names and flagging empty ones."""

    if value in (None, ""):
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(settings: Settings, fields: list[str]) -> dict[str, str]:
    """Log selected settings for quick troubleshooting and return what was logged."""

    config = {"service": settings.service_name}
    for name in fields:
        config[name] = _safe_value(name, getattr(settings, name))
    logger.info("startup_config=%s", config)
    return config
