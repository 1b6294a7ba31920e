"""
Vigil - Logger Module
=====================

Custom tree-style logging with EST timezone and daily rotation.

DESIGN:
    Tree-style formatting groups the fields of one event together so a
    detection, its score change and the resulting punishment read as a
    single block in the log file.

    Key features:
    - Tree-style formatting for structured data
    - EST timezone timestamps (auto EST/EDT handling)
    - Daily log rotation in dated folders
    - 7-day log retention with automatic cleanup
    - Session tracking with unique run IDs
    - Discord webhook integration for error alerts

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import os
import uuid
import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Tuple, Optional

import aiohttp

from vigil.core.config import NY_TZ


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("VIGIL_LOG_DIR", "logs"))
"""Directory for all log files, organized by date."""

LOG_RETENTION_DAYS = 7
"""Number of days to retain log directories before cleanup."""

Details = List[Tuple[str, str]]


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """
    Custom logger with tree-style formatting and EST timezone support.

    Attributes:
        run_id: Unique identifier for this bot session.
        log_file: Path to the main log file.
        error_file: Path to the error-only log file.
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self.run_id: str = str(uuid.uuid4())[:8]
        self._webhook_url: Optional[str] = None
        self._logs_dir = logs_dir

        today = datetime.now(NY_TZ).strftime("%Y-%m-%d")
        self.log_dir = logs_dir / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"Vigil-{today}.log"
        self.error_file = self.log_dir / f"Vigil-Errors-{today}.log"

        self._cleanup_old_logs()
        self._write_session_header()

    def set_webhook(self, url: Optional[str]) -> None:
        """Set webhook URL for error notifications."""
        self._webhook_url = url

    # =========================================================================
    # Log Cleanup
    # =========================================================================

    def _cleanup_old_logs(self) -> None:
        """
        Remove log directories older than retention period.

        Only directories named YYYY-MM-DD are considered.
        """
        if not self._logs_dir.exists():
            return

        now = datetime.now()
        deleted = 0

        for item in self._logs_dir.iterdir():
            if not item.is_dir():
                continue
            try:
                dir_date = datetime.strptime(item.name, "%Y-%m-%d")
            except ValueError:
                continue
            if (now - dir_date).days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()
                deleted += 1

        if deleted > 0:
            print(f"[LOG CLEANUP] Removed {deleted} old log directories")

    def _write_session_header(self) -> None:
        header = f"""
============================================================
NEW SESSION - RUN ID: {self.run_id}
[{datetime.now(NY_TZ).strftime("%I:%M:%S %p %Z")}]
============================================================
"""
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(header)

    # =========================================================================
    # Core Logging
    # =========================================================================

    def _get_timestamp(self) -> str:
        """Get current timestamp like "[02:30:45 PM EST]"."""
        return datetime.now(NY_TZ).strftime("[%I:%M:%S %p %Z]")

    def _write(
        self,
        message: str,
        emoji: str = "",
        include_timestamp: bool = True,
        is_error: bool = False,
    ) -> None:
        """
        Write log message to console and file.

        Args:
            message: Log message content.
            emoji: Optional emoji prefix.
            include_timestamp: Whether to prepend timestamp.
            is_error: Whether to also write to error log.
        """
        if include_timestamp:
            timestamp = self._get_timestamp()
            full_message = f"{timestamp} {emoji} {message}" if emoji else f"{timestamp} {message}"
        else:
            full_message = f"{emoji} {message}" if emoji else message

        print(full_message)

        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(f"{full_message}\n")

        if is_error:
            with open(self.error_file, "a", encoding="utf-8") as f:
                f.write(f"{full_message}\n")

    def _write_details(self, details: Details, is_error: bool = False) -> None:
        for i, (key, value) in enumerate(details):
            prefix = "└─" if i == len(details) - 1 else "├─"
            self._write(
                f"  {prefix} {key}: {value}",
                include_timestamp=False,
                is_error=is_error,
            )

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: Details,
        emoji: str = "📦",
    ) -> None:
        """
        Log structured data in tree format.

        Example output:
            [02:30:45 PM EST] 🛡️ Trust Score Updated
              ├─ User: 1234
              ├─ Score: 5 -> 11
              └─ Reasons: Duplicate message sent 3 times
        """
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write("\n")

        self._write(title, emoji=emoji)
        self._write_details(items)

        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write("\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Optional[Details] = None) -> None:
        """Log debug message (only if DEBUG env var set)."""
        if os.getenv("DEBUG"):
            self._write(msg, "🔍")
            if details:
                self._write_details(details)

    def info(self, msg: str, details: Optional[Details] = None) -> None:
        self._write(msg, "ℹ️")
        if details:
            self._write_details(details)

    def success(self, msg: str) -> None:
        self._write(msg, "✅")

    def warning(self, msg: str, details: Optional[Details] = None) -> None:
        self._write(msg, "⚠️")
        if details:
            self._write_details(details)

    def error(self, msg: str, details: Optional[Details] = None) -> None:
        """
        Log error message with optional structured details.

        Errors with details are forwarded to the webhook when one is
        configured and an event loop is running.
        """
        if not details:
            self._write(msg, "❌", is_error=True)
            return

        self._write("", is_error=True)
        self._write(msg, "❌", is_error=True)
        self._write_details(details, is_error=True)
        self._write("", include_timestamp=False, is_error=True)

        if self._webhook_url:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            loop.create_task(self._send_webhook_error(msg, details))

    def critical(self, msg: str) -> None:
        self._write(msg, "🚨", is_error=True)

    # =========================================================================
    # Webhook Integration
    # =========================================================================

    async def _send_webhook_error(self, title: str, details: Details) -> None:
        """Send error notification to Discord webhook."""
        if not self._webhook_url:
            return

        try:
            description = "\n".join([f"**{k}:** {v}" for k, v in details])
            payload = {
                "embeds": [{
                    "title": f"❌ {title}",
                    "description": description,
                    "color": 0xDC3545,
                    "timestamp": datetime.now(NY_TZ).isoformat(),
                    "footer": {"text": f"Run ID: {self.run_id}"},
                }]
            }

            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as resp:
                    if resp.status != 204:
                        print(f"Webhook error: {resp.status}")

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"Failed to send webhook: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "logger",
    "TreeLogger",
    "NY_TZ",
]
