"""
Bright Guard - Discord HTTP Error Utilities
===========================================

Logging helpers for failed Discord API mutations.

The guard never retries a failed mutation: a lockdown that hits a 403 on
one role moves on to the next. These helpers keep the failure visible in
the logs with its status and context.

Usage:
    from bright.utils.discord_rate_limit import log_http_error, delete_message_safe

    try:
        await role.edit(permissions=perms, reason=reason)
    except discord.HTTPException as e:
        log_http_error(e, "Lockdown Role Edit", [("Role", role.name)])

Author: حَـــــنَّـــــا
"""

from typing import Optional

import discord

from bright.core.logger import logger


# HTTP status code descriptions for logging
HTTP_STATUS_DESCRIPTIONS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    429: "Rate Limited",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


# =============================================================================
# Logging Helper
# =============================================================================

def log_http_error(
    e: discord.HTTPException,
    operation: str,
    context: Optional[list] = None,
) -> None:
    """
    Log a Discord HTTPException with comprehensive details.

    Args:
        e: The HTTPException that occurred
        operation: Description of what operation failed
        context: Additional context tuples for logging [(key, value), ...]
    """
    status = getattr(e, "status", 0)
    status_desc = HTTP_STATUS_DESCRIPTIONS.get(status, "Unknown")
    retry_after = getattr(e, "retry_after", None)

    log_items = [
        ("Status", f"{status} ({status_desc})"),
        ("Error", str(e.text) if getattr(e, "text", None) else str(e)),
    ]

    if retry_after:
        log_items.append(("Retry After", f"{retry_after:.1f}s"))

    if context:
        log_items.extend(context)

    # Rate limits, forbidden, and missing targets are expected during a raid
    if status == 429:
        logger.warning(f"🚦 {operation} Rate Limited", log_items)
    elif status == 403:
        logger.warning(f"🚫 {operation} Forbidden", log_items)
    elif status == 404:
        logger.warning(f"❓ {operation} Not Found", log_items)
    else:
        logger.error(f"❌ {operation} Failed", log_items)


# =============================================================================
# Safe Helpers
# =============================================================================

async def delete_message_safe(message: discord.Message) -> bool:
    """
    Delete a message without raising on failure.

    Returns:
        True if deleted (or already gone), False otherwise.
    """
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return True
    except discord.HTTPException as e:
        log_http_error(e, "Delete Message", [
            ("Message ID", str(message.id)),
        ])
        return False


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "log_http_error",
    "delete_message_safe",
    "HTTP_STATUS_DESCRIPTIONS",
]
