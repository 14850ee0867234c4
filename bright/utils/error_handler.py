"""
Bright Guard - Error Handler
============================

Detailed error context for startup failures and unexpected listener errors.

Features:
- Error categorization (Discord, API, Config, Capsule)
- Recovery suggestions in the log line
- Critical error context stored as JSON under logs/errors

Author: حَـــــنَّـــــا
"""

import json
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import discord

from bright.core.config import ConfigValidationError
from bright.core.logger import logger


class ErrorContext:
    """Captures and formats detailed error context"""

    @staticmethod
    def get_full_context(e: Exception, location: str, **kwargs) -> Dict[str, Any]:
        """
        Get comprehensive error context.

        Args:
            e: The exception
            location: Where the error occurred
            **kwargs: Additional context (guild, member, etc.)

        Returns:
            Dictionary with full error context
        """
        context = {
            'timestamp': datetime.now().isoformat(),
            'location': location,
            'error_type': type(e).__name__,
            'error_message': str(e),
            'traceback': ''.join(traceback.format_exception(type(e), e, e.__traceback__)),
            'python_version': sys.version,
            'additional_context': {k: str(v) for k, v in kwargs.items()},
        }

        guild = kwargs.get('guild')
        if isinstance(guild, discord.Guild):
            context['guild_context'] = {
                'name': guild.name,
                'id': guild.id,
                'owner_id': guild.owner_id,
            }

        member = kwargs.get('member')
        if isinstance(member, discord.Member):
            context['member_context'] = {
                'name': str(member),
                'id': member.id,
                'bot': member.bot,
                'roles': [role.name for role in member.roles],
            }

        return context


class ErrorHandler:
    """Error handling with context and recovery hints"""

    ERROR_CATEGORIES = {
        'config': (ConfigValidationError,),
        'discord': (
            discord.errors.LoginFailure,
            discord.errors.PrivilegedIntentsRequired,
            discord.errors.HTTPException,
        ),
        'api': (ConnectionError, TimeoutError, OSError),
    }

    SUGGESTIONS = {
        ConfigValidationError: "Check the .env file for missing values",
        discord.errors.LoginFailure: "DISCORD_TOKEN is invalid - regenerate it in the developer portal",
        discord.errors.PrivilegedIntentsRequired: "Enable Server Members and Message Content intents",
        discord.errors.Forbidden: "Check bot permissions in server settings",
        discord.errors.NotFound: "Resource not found - it was probably deleted",
        discord.errors.HTTPException: "Discord API issue - check status.discord.com",
        ConnectionError: "Network connection issue - check internet connection",
        TimeoutError: "Request timed out - Discord may be degraded",
        OSError: "System resource issue - check disk space and permissions",
    }

    @classmethod
    def categorize_error(cls, e: Exception) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return 'general'

    @classmethod
    def get_recovery_suggestion(cls, e: Exception) -> str:
        # Most specific class first
        for error_type in type(e).__mro__:
            if error_type in cls.SUGGESTIONS:
                return cls.SUGGESTIONS[error_type]
        return "Unexpected error - check logs for details"

    @classmethod
    def handle(cls, e: Exception, location: str, critical: bool = False, **context) -> None:
        """
        Handle an error with full context.

        Args:
            e: The exception
            location: Where the error occurred
            critical: Whether this error should stop execution
            **context: Additional context
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(e)
        full_context = ErrorContext.get_full_context(e, location, **context)

        error_msg = f"[{category.upper()}] in {location}"

        if critical:
            logger.error(f"💥 CRITICAL ERROR {error_msg}", [
                ("Type", full_context['error_type']),
                ("Message", full_context['error_message'][:200]),
                ("Recovery", suggestion),
            ])
            logger.info(f"Traceback:\n{full_context['traceback']}")
            cls._store_critical_error(full_context)
        else:
            logger.warning(f"ERROR {error_msg}", [
                ("Type", full_context['error_type']),
                ("Message", str(e)[:100]),
                ("Recovery", suggestion),
            ])

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        error_dir = Path('logs/errors')
        try:
            error_dir.mkdir(exist_ok=True, parents=True)
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            error_file = error_dir / f"error_{timestamp}.json"
            with open(error_file, 'w', encoding='utf-8') as f:
                json.dump(context, f, indent=2, default=str)
        except OSError as save_error:
            logger.info(f"Failed to save error details: {save_error}")
            return

        logger.info(f"Critical error saved to {error_file}")


__all__ = ["ErrorHandler", "ErrorContext"]
