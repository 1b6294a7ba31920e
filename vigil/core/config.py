"""
Vigil - Configuration Module
============================

Centralized configuration management with environment variable validation.

DESIGN:
    A single source of truth for process-wide settings, loaded from
    environment variables at startup. Per-guild trust settings live in the
    database and are managed by the trust service, not here.

    Key patterns:
    - get_config() loads once and reuses the Config instance
    - Validation happens once at load time, not on every access

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo


# =============================================================================
# Timezone Configuration
# =============================================================================

NY_TZ = ZoneInfo("America/New_York")
"""Eastern timezone for consistent timestamps across all bot operations."""


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        database_path: SQLite file holding trust records and guild settings.
        error_webhook_url: Optional webhook for error alerts.
        moderation_timeout: Seconds to wait on a single moderation call.
        window_cleanup_interval: Seconds between behavior window sweeps.
        window_cache_max_size: Maximum number of behavior windows kept.
    """

    # -------------------------------------------------------------------------
    # Required: Discord
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional: Storage
    # -------------------------------------------------------------------------

    database_path: str = "data/vigil.db"

    # -------------------------------------------------------------------------
    # Optional: Alerts
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Optional: Trust Engine Tuning
    # -------------------------------------------------------------------------

    moderation_timeout: int = 10
    window_cleanup_interval: int = 600
    window_cache_max_size: int = 5000


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Standardized color palette for Discord embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    ORANGE = 0xFF9800

    # Punishment notifications
    LOG_NEGATIVE = RED      # Bans, kicks
    LOG_WARNING = GOLD      # Timeouts
    LOG_POSITIVE = GREEN    # Revocations
    PRIORITY_HIGH = ORANGE  # Failed punishments needing staff attention


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse optional integer with default and range validation.

    Out-of-range values are clamped and unparseable values fall back to
    the default, both with a warning.
    """
    if not value:
        return default
    from vigil.core.logger import logger
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Return the URL if it looks like http(s), None otherwise."""
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from vigil.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigValidationError: If DISCORD_TOKEN is missing.
    """
    discord_token = os.getenv("DISCORD_TOKEN", "").strip()
    if not discord_token:
        raise ConfigValidationError(
            "Missing required environment variables: DISCORD_TOKEN"
        )

    return Config(
        discord_token=discord_token,
        database_path=os.getenv("DATABASE_PATH") or "data/vigil.db",
        error_webhook_url=_validate_url(
            os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"
        ),
        moderation_timeout=_parse_int_with_default(
            os.getenv("MODERATION_TIMEOUT"), 10, "MODERATION_TIMEOUT", 1, 60
        ),
        window_cleanup_interval=_parse_int_with_default(
            os.getenv("WINDOW_CLEANUP_INTERVAL"), 600, "WINDOW_CLEANUP_INTERVAL", 30, 3600
        ),
        window_cache_max_size=_parse_int_with_default(
            os.getenv("WINDOW_CACHE_MAX_SIZE"), 5000, "WINDOW_CACHE_MAX_SIZE", 100, None
        ),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """Load the config (raising if invalid) and log a startup summary."""
    from vigil.core.logger import logger

    config = get_config()

    logger.tree("Configuration Validated", [
        ("Required", "✅ All required variables set"),
        ("Database", config.database_path),
        ("Webhook Alerts", "On" if config.error_webhook_url else "Off"),
        ("Moderation Timeout", f"{config.moderation_timeout}s"),
        ("Window Sweep", f"{config.window_cleanup_interval}s"),
    ], emoji="⚙️")
    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    "load_config",
    "validate_and_log_config",
]
