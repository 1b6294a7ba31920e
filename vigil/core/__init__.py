"""
Vigil - Core Package
====================

Configuration, logging and persistence primitives.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""
