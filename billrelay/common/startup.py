"""Startup-time helpers for safe config logging."""

from billrelay.common.config import RelaySettings
from billrelay.common.logging import logger


SECRET_MARKERS = ("password", "secret", "key", "username", "headers")


def _safe_value(name: str, value: object) -> object:
    """Redact settings whose field name looks like it carries a credential."""

    if value is None:
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    return value


def log_startup_config(config: RelaySettings, fields: list[str]) -> None:
    """Log selected settings fields for quick troubleshooting."""

    snapshot: dict[str, object] = {"service": config.service_name}
    for name in fields:
        snapshot[name] = _safe_value(name, getattr(config, name, None))
    logger.info("startup_config=%s", snapshot)
