"""Safe error message formatting utilities.

Ensures exceptions always have useful display messages, even when
their str() representation is empty (e.g., TimeoutError, bare OSError).

Skip reasons for unreadable mentions and CLI error output both go through
here, so a failed read never produces an empty reason string.
"""

from __future__ import annotations

import asyncio

from rich.markup import escape as _escape_markup

# Friendly messages for specific exception types known to have empty str()
FRIENDLY_MESSAGES: dict[type, str] = {
    TimeoutError: "Operation timed out.",
    asyncio.CancelledError: "Operation was cancelled.",
    PermissionError: "Permission denied.",
    FileNotFoundError: "No such file or directory.",
    IsADirectoryError: "Is a directory.",
    KeyboardInterrupt: "Operation interrupted by user.",
}


def format_error_message(
    e: BaseException,
    *,
    include_type: bool = True,
    fallback: str | None = None,
) -> str:
    """Format an exception into a useful display message.

    Handles exceptions with empty str() representations by falling back
    to the caller's fallback text, a friendly message, or the type name.

    Args:
        e: The exception to format
        include_type: Whether to include the exception type name
        fallback: Message to use when the exception carries no message of its own

    Returns:
        A non-empty, user-friendly error message

    Examples:
        >>> format_error_message(ValueError("invalid input"))
        'ValueError: invalid input'

        >>> format_error_message(ValueError("invalid input"), include_type=False)
        'invalid input'

        >>> format_error_message(OSError(), include_type=False, fallback="Failed to read mentioned file.")
        'Failed to read mentioned file.'
    """
    error_str = str(e)
    error_type = type(e).__name__

    # If we have a message, use it
    if error_str:
        if include_type and error_type not in error_str:
            return f"{error_type}: {error_str}"
        return error_str

    if fallback:
        return fallback

    # No message - check for friendly fallback
    for exc_type, friendly_msg in FRIENDLY_MESSAGES.items():
        if isinstance(e, exc_type):
            return f"{error_type}: {friendly_msg}" if include_type else friendly_msg

    # Last resort: just the type name with indicator
    return f"{error_type}: (no additional details)"


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings.

    Workspace paths and OS error messages can contain brackets that Rich
    would otherwise parse as markup tags.

    Args:
        value: Any value to escape (will be converted to str)

    Returns:
        String safe for interpolation into Rich markup f-strings
    """
    return _escape_markup(str(value))
