"""
Vigil - Event Handlers
======================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

EVENT_COGS = [
    "vigil.handlers.trust",
]

__all__ = ["EVENT_COGS"]
