"""Environment-based configuration for the API service."""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class Settings:
    """API configuration loaded from environment variables."""

    def __init__(self):
        self.api_key = os.getenv("HERMES_API_KEY", "")
        if not self.api_key:
            raise RuntimeError(
                "HERMES_API_KEY environment variable is required. "
                "Generate one with: openssl rand -hex 32"
            )
        self.host = os.getenv("HERMES_API_HOST", "0.0.0.0")
        self.port = int(os.getenv("HERMES_API_PORT", "8000"))
        self.db_path = os.getenv(
            "HERMES_DATABASE_PATH",
            str(Path.home() / ".hermes-engine" / "pipeline.db"),
        )
        self.debug = os.getenv("HERMES_ENGINE_ENV", "production") != "production"
        self.periodic_stats = os.getenv("HERMES_PERIODIC_STATS", "true").lower() == "true"

        # Delivery and enrichment collaborators
        self.resend_api_key = os.getenv("RESEND_API_KEY", "")
        self.resend_from_email = os.getenv("RESEND_FROM_EMAIL", "hermes@localhost")
        self.resend_reply_to = os.getenv("RESEND_REPLY_TO")
        self.hunter_api_key = os.getenv("HUNTER_API_KEY", "")

        if not self.resend_api_key:
            logger.warning("RESEND_API_KEY not set; email sending is disabled")
        if not self.hunter_api_key:
            logger.warning("HUNTER_API_KEY not set; email enrichment is disabled")


_settings = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Forget cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Lazy proxy so settings aren't loaded until first access."""

    def __getattr__(self, name):
        return getattr(_get_settings(), name)


settings = _SettingsProxy()
