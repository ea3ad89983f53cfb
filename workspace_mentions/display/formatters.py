"""Formatting utilities for CLI display."""

from ..lib.mention_loading.models import WorkspaceMentionContext


def format_byte_size(size: int) -> str:
    """Format a byte count for humans.

    Examples:
        >>> format_byte_size(512)
        '512 B'
        >>> format_byte_size(300 * 1024)
        '300.0 KB'
    """
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_context_summary(context: WorkspaceMentionContext) -> str:
    """One-line summary of a mention-loading result.

    Returns:
        Summary like "2 loaded, 1 skipped (1,234 chars)"
    """
    if not context.mentions:
        return "No @mentions found"
    return f"{len(context.files)} loaded, {len(context.skipped)} skipped ({context.total_chars:,} chars)"
