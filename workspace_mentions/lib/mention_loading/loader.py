"""Budgeted loading of @mentioned workspace files.

Pipeline for one message:
1. Collect canonical mentions from the text (plus explicit mentions)
2. Reject mentions that escape the workspace root (no I/O)
3. Stat and read the remaining files concurrently in worker threads
4. Apply per-file and per-message character budgets in mention order
5. Render the context block from whatever loaded
"""

import asyncio
import logging
import os
import stat
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ...utils.error_format import format_error_message
from ...utils.mentions import collect_mention_tokens
from ...utils.mentions import merge_explicit_mentions
from .models import TRUNCATION_MARKER
from .models import MentionedWorkspaceFile
from .models import MentionLimits
from .models import SkippedMention
from .models import WorkspaceMentionContext
from .renderer import render_context_block
from .resolver import OUTSIDE_ROOT_REASON
from .resolver import WorkspaceSandbox

logger = logging.getLogger(__name__)

DIRECTORY_REASON = "Mention points to a directory. Only files are supported."
SPECIAL_FILE_REASON = "Mention points to a special file. Only regular files are supported."
BINARY_REASON = "File appears to be binary and cannot be injected as text context."
BUDGET_EXHAUSTED_REASON = "Message already reached max injected context size."
READ_FAILED_REASON = "Failed to read mentioned file."

# Room kept for the marker when cutting content to the remaining message budget
_MARKER_HEADROOM = 16


def too_many_mentions_reason(limit: int) -> str:
    return f"Only {limit} @file references can be loaded per message."


def file_too_large_reason(limit: int) -> str:
    return f"File exceeds size limit ({limit} bytes)."


def is_likely_binary(data: bytes, sample_size: int = 4096) -> bool:
    """Treat content as binary if its leading sample contains a NUL byte.

    Examples:
        >>> is_likely_binary(b"plain text")
        False
        >>> is_likely_binary(b"PK\\x03\\x04\\x00")
        True
    """
    return b"\x00" in data[:sample_size]


def truncate_text(content: str, limit: int) -> tuple[str, bool]:
    """Cut content to limit characters and append the truncation marker.

    Returns:
        Tuple of (content, truncated)
    """
    if len(content) <= limit:
        return content, False
    return f"{content[:limit]}{TRUNCATION_MARKER}", True


@dataclass
class _ReadOutcome:
    """Result of the I/O half of loading one mention."""

    mention: str
    absolute_path: str
    data: bytes | None = None
    reason: str | None = None


class WorkspaceMentionLoader:
    """Loads canonical mentions from one workspace under fixed budgets.

    Features:
    - Sandbox containment (lexical, then symlink-aware for existing paths)
    - Size, directory and binary checks before content is accepted
    - Per-file and per-message character budgets, consumed in mention order
    - Concurrent file I/O with results identical to sequential processing

    Per-mention problems never raise; they become SkippedMention entries.
    """

    def __init__(self, workspace_path: str | os.PathLike[str], limits: MentionLimits | None = None):
        """Initialize loader for a workspace.

        Args:
            workspace_path: Absolute workspace root supplied by the caller
            limits: Budgets to apply (default: MentionLimits())
        """
        self.limits = limits or MentionLimits()
        self.sandbox = WorkspaceSandbox(workspace_path)

    async def load(self, mentions: list[str]) -> WorkspaceMentionContext:
        """Load canonical mentions into a WorkspaceMentionContext.

        Args:
            mentions: Deduplicated canonical mentions in discovery order

        Returns:
            Aggregate result with loaded files, skip reasons and context block
        """
        cap = self.limits.max_mentioned_files
        candidates = mentions[:cap]
        overflow = mentions[cap:]

        # gather() keeps mention order; budgets are applied afterwards, in that order
        outcomes = await asyncio.gather(*(self._load_one(m) for m in candidates))

        files: list[MentionedWorkspaceFile] = []
        skipped: list[SkippedMention] = []
        total_chars = 0

        for outcome in outcomes:
            if outcome.reason is not None or outcome.data is None:
                reason = outcome.reason or READ_FAILED_REASON
                logger.debug(f"Skipped mention {outcome.mention}: {reason}")
                skipped.append(SkippedMention(mention=outcome.mention, reason=reason))
                continue

            text = outcome.data.decode("utf-8", errors="replace")
            content, truncated = truncate_text(text, self.limits.max_file_chars)

            remaining = self.limits.max_total_context_chars - total_chars
            if remaining <= 0:
                logger.debug(f"Skipped mention {outcome.mention}: context budget exhausted")
                skipped.append(SkippedMention(mention=outcome.mention, reason=BUDGET_EXHAUSTED_REASON))
                continue

            if len(content) > remaining:
                content = f"{content[: max(0, remaining - _MARKER_HEADROOM)]}{TRUNCATION_MARKER}"
                truncated = True

            total_chars += len(content)
            files.append(
                MentionedWorkspaceFile(
                    mention=outcome.mention,
                    relative_path=outcome.mention,
                    absolute_path=outcome.absolute_path,
                    bytes=len(outcome.data),
                    truncated=truncated,
                    content=content,
                )
            )

        if overflow:
            reason = too_many_mentions_reason(cap)
            logger.debug(f"Skipped {len(overflow)} mentions over the limit of {cap}")
            skipped.extend(SkippedMention(mention=m, reason=reason) for m in overflow)

        logger.info(
            f"Loaded {len(files)} of {len(mentions)} mentioned files "
            f"({len(skipped)} skipped, {total_chars} chars) from {self.sandbox.root}"
        )

        return WorkspaceMentionContext(
            mentions=list(mentions),
            files=files,
            skipped=skipped,
            context_block=render_context_block(files),
        )

    async def _load_one(self, mention: str) -> _ReadOutcome:
        absolute = self.sandbox.resolve(mention)
        if absolute is None:
            return _ReadOutcome(mention=mention, absolute_path="", reason=OUTSIDE_ROOT_REASON)
        return await asyncio.to_thread(self._read_mention, mention, absolute)

    def _read_mention(self, mention: str, absolute_path: str) -> _ReadOutcome:
        """Stat, check and read one in-sandbox mention. Runs in a worker thread."""
        try:
            st = os.stat(absolute_path)
            if not self.sandbox.check_real_path(absolute_path):
                return _ReadOutcome(mention=mention, absolute_path=absolute_path, reason=OUTSIDE_ROOT_REASON)
            if stat.S_ISDIR(st.st_mode):
                return _ReadOutcome(mention=mention, absolute_path=absolute_path, reason=DIRECTORY_REASON)
            if not stat.S_ISREG(st.st_mode):
                return _ReadOutcome(mention=mention, absolute_path=absolute_path, reason=SPECIAL_FILE_REASON)
            if st.st_size > self.limits.max_file_bytes:
                return _ReadOutcome(
                    mention=mention,
                    absolute_path=absolute_path,
                    reason=file_too_large_reason(self.limits.max_file_bytes),
                )
            data = Path(absolute_path).read_bytes()
        # ValueError covers paths the OS cannot encode (NUL bytes, lone surrogates)
        except (OSError, ValueError) as e:
            reason = format_error_message(e, include_type=False, fallback=READ_FAILED_REASON)
            return _ReadOutcome(mention=mention, absolute_path=absolute_path, reason=reason)

        if is_likely_binary(data, self.limits.binary_sample_bytes):
            return _ReadOutcome(mention=mention, absolute_path=absolute_path, reason=BINARY_REASON)

        return _ReadOutcome(mention=mention, absolute_path=absolute_path, data=data)


def _validate_arguments(
    message: object,
    workspace_path: object,
    explicit_mentions: object,
) -> None:
    if not isinstance(message, str):
        raise TypeError(f"message must be a string, got {type(message).__name__}")
    if not workspace_path:
        raise ValueError("workspace_path is required")
    if not isinstance(workspace_path, str | os.PathLike):
        raise TypeError(f"workspace_path must be a path, got {type(workspace_path).__name__}")
    if explicit_mentions is None:
        return
    if not isinstance(explicit_mentions, list | tuple):
        raise TypeError(f"explicit_mentions must be a list of strings, got {type(explicit_mentions).__name__}")
    for entry in explicit_mentions:
        if not isinstance(entry, str):
            raise TypeError(f"explicit_mentions entries must be strings, got {type(entry).__name__}")


async def build_workspace_mention_context(
    message: str,
    workspace_path: str | os.PathLike[str],
    explicit_mentions: Sequence[str] | None = None,
    limits: MentionLimits | None = None,
) -> WorkspaceMentionContext:
    """Resolve @mentions in a message and load them as prompt context.

    Args:
        message: Raw user message
        workspace_path: Trusted absolute workspace root
        explicit_mentions: Extra mention strings attached outside the text
        limits: Budgets to apply (default: MentionLimits())

    Returns:
        WorkspaceMentionContext; context_block is None when nothing loaded

    Raises:
        TypeError: If message or explicit_mentions have the wrong type
        ValueError: If workspace_path is missing
    """
    _validate_arguments(message, workspace_path, explicit_mentions)

    mentions = collect_mention_tokens(message)
    if explicit_mentions:
        mentions = merge_explicit_mentions(mentions, explicit_mentions)

    if not mentions:
        return WorkspaceMentionContext()

    loader = WorkspaceMentionLoader(workspace_path, limits)
    return await loader.load(mentions)


def build_workspace_mention_context_sync(
    message: str,
    workspace_path: str | os.PathLike[str],
    explicit_mentions: Sequence[str] | None = None,
    limits: MentionLimits | None = None,
) -> WorkspaceMentionContext:
    """Blocking variant of build_workspace_mention_context() for non-async callers."""
    return asyncio.run(build_workspace_mention_context(message, workspace_path, explicit_mentions, limits))
