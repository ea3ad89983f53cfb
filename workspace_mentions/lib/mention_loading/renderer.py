"""Rendering of loaded mention files into a prompt context block."""

import posixpath
import re

from .models import MentionedWorkspaceFile

CONTEXT_HEADING = "### Referenced Workspace Files"
CONTEXT_INSTRUCTION = "The user tagged these files with @ mentions. Use them as authoritative context snapshots."
USER_REQUEST_HEADING = "### User Request"

_LANGUAGE_PATTERN = re.compile(r"^[a-z0-9]{1,12}$")


def infer_language_from_path(relative_path: str) -> str:
    """Pick the fence label for a file from its extension.

    Examples:
        >>> infer_language_from_path("/src/agent.PY")
        'py'
        >>> infer_language_from_path("/Makefile")
        'text'
    """
    extension = posixpath.splitext(relative_path)[1].lstrip(".").lower()
    if not extension or not _LANGUAGE_PATTERN.match(extension):
        return "text"
    return extension


def render_file_section(file: MentionedWorkspaceFile) -> str:
    language = infer_language_from_path(file.relative_path)
    truncation_suffix = " (truncated)" if file.truncated else ""
    return "\n".join(
        [
            f"File: {file.relative_path} • {file.bytes} bytes{truncation_suffix}",
            f"```{language}",
            file.content,
            "```",
        ]
    )


def render_context_block(files: list[MentionedWorkspaceFile]) -> str | None:
    """Render loaded files into a single context block.

    Args:
        files: Loaded files in mention order

    Returns:
        The block, or None when no file was loaded
    """
    if not files:
        return None

    sections = [render_file_section(f) for f in files]
    return "\n\n".join([CONTEXT_HEADING, CONTEXT_INSTRUCTION, *sections])


def build_message_with_mention_context(message: str, context_block: str | None = None) -> str:
    """Prepend a rendered context block to the user's message.

    Args:
        message: Original user message
        context_block: Block from render_context_block(), if any

    Returns:
        "<block>\\n\\n### User Request\\n\\n<message>", or the message unchanged
        when the block is empty or missing
    """
    trimmed_context = context_block.strip() if context_block else ""
    if not trimmed_context:
        return message

    return f"{trimmed_context}\n\n{USER_REQUEST_HEADING}\n\n{message}"
