"""
Bright Guard - Core Package
===========================

Configuration, logging, and health monitoring.

DESIGN:
    Core modules expose global instances so every component shares state:
    - get_config() returns the same Config instance
    - logger is a global TreeLogger instance

Author: حَـــــنَّـــــا
"""

# =============================================================================
# Core Imports
# =============================================================================

from .config import (
    Config,
    ConfigValidationError,
    EmbedColors,
    NY_TZ,
    get_config,
)

from .logger import logger, TreeLogger

from .health import HealthCheckServer


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    # Logger
    "logger",
    "TreeLogger",
    # Health
    "HealthCheckServer",
]
