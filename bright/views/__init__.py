"""
Bright Guard - Views Package
============================

Persistent Discord UI components.

Author: حَـــــنَّـــــا
"""

from .antinuke import (
    BotReviewView,
    HumanReviewView,
    RestoreCapsuleView,
    ThreatActionView,
    ThreatLogView,
    setup_antinuke_views,
)


__all__ = [
    "BotReviewView",
    "HumanReviewView",
    "RestoreCapsuleView",
    "ThreatActionView",
    "ThreatLogView",
    "setup_antinuke_views",
]
