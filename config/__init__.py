"""Configuration module for loading and managing application settings"""
from typing import Dict, Any
import logging

from .lib.load_settings_conf import load_settings_conf, mask_settings, SettingsError

__all__ = ['settings_conf', 'load_settings_conf', 'mask_settings', 'SettingsError', 'feature_enabled']

logger = logging.getLogger(__name__)

# Settings each optional integration needs
FEATURES = {
    'razorpay': ('razorpay_key_id', 'razorpay_key_secret'),
    'smtp': ('smtp_host', 'smtp_user', 'smtp_pass'),
    'gemini': ('gemini_api_key',),
    'redis': ('redis_url',),
}


def feature_enabled(name: str, settings: Dict[str, Any] = None) -> bool:
    """Check whether every setting an optional integration needs is present."""
    settings = settings_conf if settings is None else settings
    return all(settings.get(key) for key in FEATURES[name])


try:
    settings_conf: Dict[str, Any] = load_settings_conf()
except SettingsError as e:
    # Re-raise the error but provide more context
    raise SettingsError(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Set the variables in the environment or in settings.conf.\n"
        "See settings.conf.example for the recognized options."
    ) from e

for _feature in FEATURES:
    if not feature_enabled(_feature):
        logger.warning(f"{_feature} is not configured, related features are disabled")
