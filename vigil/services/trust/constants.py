"""
Trust Engine Constants
======================

Thresholds, weights, limits and storage keys for trust scoring.
"""


# =============================================================================
# Behavior Window
# =============================================================================

WINDOW_MAX_RECORDS = 10  # most recent events kept per member
WINDOW_TTL = 60  # seconds a member's window survives without activity
WINDOW_CLEANUP_INTERVAL = 600  # seconds between eager sweeps


# =============================================================================
# Text Spam
# =============================================================================

DUPLICATE_THRESHOLD = 3  # identical messages (current included) before scoring
DUPLICATE_WEIGHT = 2  # points per duplicate

RAPID_THRESHOLD = 5  # messages inside RAPID_WINDOW before scoring
RAPID_WINDOW = 5  # seconds
RAPID_WEIGHT = 1  # points per rapid message

CAPS_MIN_LENGTH = 10  # content must be longer than this to count as caps
CAPS_THRESHOLD = 3  # all-caps messages in window before scoring
CAPS_DELTA = 1  # flat points for caps abuse


# =============================================================================
# Trust Records
# =============================================================================

HISTORY_LIMIT = 50  # score changes kept per member
LOG_LIMIT = 100  # detection logs kept per guild
DEFAULT_LOG_PAGE = 50


# =============================================================================
# Punishments
# =============================================================================

DEFAULT_REASON = "AntiCheat violation detected"
REVOKE_REASON = "AntiCheat timeout revoked by staff"
MAX_BAN_PURGE_SECONDS = 604800  # discord caps message purge at 7 days
MODERATION_TIMEOUT = 10  # seconds per moderation call


# =============================================================================
# Storage Keys
# =============================================================================

SETTINGS_KEY = "Guild/{guild_id}/trust/settings"
RECORD_KEY = "Guild/{guild_id}/trust/users/{user_id}"
INDEX_KEY = "Guild/{guild_id}/trust/index"
LOGS_KEY = "Guild/{guild_id}/trust/logs"


# =============================================================================
# Detector Names
# =============================================================================

TEXT_SPAM = "text_spam"
