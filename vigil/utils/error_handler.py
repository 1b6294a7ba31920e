"""
Vigil - Error Handler
=====================

Categorized error logging with recovery hints.

Features:
- Error categorization (Discord, Database, API)
- Recovery suggestions per category
- Critical error file logging

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
import sqlite3
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import discord

from vigil.core.logger import logger


ERROR_DIR = Path("logs/errors")


class ErrorContext:
    """Captures and formats detailed error context"""

    @staticmethod
    def get_full_context(e: Exception, location: str, **kwargs) -> Dict[str, Any]:
        """
        Get comprehensive error context.

        Args:
            e: The exception
            location: Where the error occurred
            **kwargs: Additional context (guild_id, user_id, ...)
        """
        return {
            'timestamp': datetime.now().isoformat(),
            'location': location,
            'error_type': type(e).__name__,
            'error_message': str(e),
            'traceback': ''.join(traceback.format_exception(type(e), e, e.__traceback__)),
            'python_version': sys.version,
            'additional_context': {k: str(v) for k, v in kwargs.items()},
        }


class ErrorHandler:
    """Error handling with context and recovery hints"""

    ERROR_CATEGORIES = {
        'discord': (discord.DiscordException,),
        'database': (sqlite3.Error,),
        'api': (ConnectionError, TimeoutError, OSError),
    }

    SUGGESTIONS = {
        'discord': {
            discord.Forbidden: "Check bot permissions and role hierarchy",
            discord.NotFound: "Resource not found - member may have left",
            discord.HTTPException: "Discord API issue - staff may need to act manually",
        },
        'database': {
            sqlite3.OperationalError: "Database locked or unavailable - event was dropped",
            sqlite3.IntegrityError: "Database constraint violation - check data validity",
            sqlite3.Error: "General database error - check database file",
        },
        'api': {
            ConnectionError: "Network connection issue - check internet connection",
            TimeoutError: "Request timed out",
            OSError: "System resource issue - check disk space and permissions",
        },
    }

    @classmethod
    def categorize_error(cls, e: Exception) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return 'general'

    @classmethod
    def get_recovery_suggestion(cls, e: Exception, category: str) -> str:
        for error_type, suggestion in cls.SUGGESTIONS.get(category, {}).items():
            if isinstance(e, error_type):
                return suggestion
        return "Unexpected error - check logs for details"

    @classmethod
    def handle(cls, e: Exception, location: str, critical: bool = False, **context) -> str:
        """
        Log an error with its category and a recovery hint.

        Args:
            e: The exception
            location: Where the error occurred
            critical: Whether the error also gets written to logs/errors
            **context: Additional context

        Returns:
            The error category.
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(e, category)

        details = [
            ("Location", location),
            ("Category", category.upper()),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
            ("Recovery", suggestion),
        ]
        details.extend((key, str(value)[:50]) for key, value in context.items())

        if critical:
            logger.error("💥 Critical Error", details)
            cls._store_critical_error(ErrorContext.get_full_context(e, location, **context))
        else:
            logger.warning("Handled Error", details)

        return category

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        try:
            ERROR_DIR.mkdir(exist_ok=True, parents=True)
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            error_file = ERROR_DIR / f"error_{timestamp}.json"
            with open(error_file, 'w') as f:
                json.dump(context, f, indent=2, default=str)
            logger.info(f"Critical error saved to {error_file}")
        except OSError as save_error:
            logger.info(f"Failed to save error details: {save_error}")


__all__ = [
    "ErrorContext",
    "ErrorHandler",
]
