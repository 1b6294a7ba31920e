"""
Vigil - Utilities Package
=========================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""
