"""
Bright Guard - Utilities Package
================================

Caching and Discord error helpers shared by the guard.

Author: حَـــــنَّـــــا
"""
