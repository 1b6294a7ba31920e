"""
Vigil - Trust-Score Moderation Bot
==================================

Scores member behavior with pluggable detectors and escalates to
timeouts, kicks and bans when configured thresholds are crossed.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

__version__ = "1.0.0"
