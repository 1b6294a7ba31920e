"""
Trust Engine - Detectors
========================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from .base import Detector
from .text_spam import TextSpamDetector, is_shouting

__all__ = [
    "Detector",
    "TextSpamDetector",
    "is_shouting",
]
