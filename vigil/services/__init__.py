"""
Vigil - Services Package
========================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""
