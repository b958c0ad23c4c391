"""Startup validation of the settings the watermark pipeline depends on."""

from django.conf import settings

from unmark.utils.exceptions import ConfigurationError

REQUIRED_SETTINGS = ("WATERMARK_API_KEY", "WATERMARK_API_URL")


def missing_watermark_settings(require_broker: bool = False):
    required = list(REQUIRED_SETTINGS)
    if require_broker:
        required.append("CELERY_BROKER_URL")
    return [name for name in required if not (getattr(settings, name, "") or "").strip()]


def validate_watermark_settings(require_broker: bool = True) -> None:
    """Raise ConfigurationError if any required setting is empty."""
    missing = missing_watermark_settings(require_broker=require_broker)
    if missing:
        raise ConfigurationError(missing)
