"""Pure text processing for @mentions - no file I/O."""

import posixpath
import re
from collections.abc import Iterable
from re import Pattern

# @mention pattern: "@" at start of text or after whitespace, then any run of
# non-whitespace, non-@ characters. The boundary requirement excludes email
# addresses (dev@example.com) because the "@" there follows a letter.
MENTION_PATTERN: Pattern = re.compile(r"(?:^|\s)@([^\s@]+)")

# Trailing characters that close a sentence or a quote rather than a filename
TRAILING_PUNCTUATION_PATTERN: Pattern = re.compile(r"[),.;!?:'\"`]+$")


def trim_trailing_punctuation(value: str) -> str:
    """Strip sentence punctuation glued to the end of a token.

    Examples:
        >>> trim_trailing_punctuation("README.md).")
        'README.md'
        >>> trim_trailing_punctuation("src/app.py")
        'src/app.py'
    """
    return TRAILING_PUNCTUATION_PATTERN.sub("", value)


def normalize_mention_token(token: str) -> str | None:
    """
    Convert a raw mention token into its canonical form.

    The canonical form is a POSIX-style path relative to the workspace root
    with a single leading slash (e.g. '/src/agent.py'). Tokens that normalize
    to nothing, that climb above the root, or that contain lone surrogates
    (not valid Unicode text) are rejected.

    Args:
        token: Raw token text without the leading "@"

    Returns:
        Canonical mention, or None if the token is unusable

    Examples:
        >>> normalize_mention_token("./src//agent.py,")
        '/src/agent.py'
        >>> normalize_mention_token("docs\\\\guide.md")
        '/docs/guide.md'
        >>> normalize_mention_token("../secret") is None
        True
    """
    trimmed = trim_trailing_punctuation(token.strip())
    if not trimmed:
        return None
    if not trimmed.isascii():
        try:
            trimmed.encode("utf-8")
        except UnicodeEncodeError:
            return None

    slash_normalized = trimmed.replace("\\", "/")
    # Only one leading "./" or "/" is stripped; normpath handles the rest
    if slash_normalized.startswith("./"):
        without_prefix = slash_normalized[2:]
    elif slash_normalized.startswith("/"):
        without_prefix = slash_normalized[1:]
    else:
        without_prefix = slash_normalized

    if not without_prefix:
        return None

    # A token that is still absolute here ("@//etc/passwd") stays absolute and
    # is rejected later by the sandbox check
    normalized = posixpath.normpath(without_prefix)
    # normpath preserves exactly two leading slashes; collapse them to one
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if not normalized or normalized == ".":
        return None
    if normalized == ".." or normalized.startswith("../"):
        return None

    return f"/{normalized}"


def collect_mention_tokens(message: str) -> list[str]:
    """
    Extract canonical @mentions from free-form text.

    Mentions are deduplicated by canonical form and returned in the order
    they first appear.

    Args:
        message: Text to scan

    Returns:
        Ordered list of canonical mentions

    Examples:
        >>> collect_mention_tokens("Review @src/agent.py and @./src/agent.py")
        ['/src/agent.py']
        >>> collect_mention_tokens("Email dev@example.com")
        []
    """
    seen: set[str] = set()
    mentions: list[str] = []

    for match in MENTION_PATTERN.finditer(message):
        normalized = normalize_mention_token(match.group(1))
        if normalized is None or normalized in seen:
            continue
        seen.add(normalized)
        mentions.append(normalized)

    return mentions


def merge_explicit_mentions(mentions: list[str], explicit_mentions: Iterable[str]) -> list[str]:
    """
    Append caller-supplied mentions after the inline ones.

    Explicit mentions go through the same normalization as inline tokens and
    are skipped when unusable or already present.

    Args:
        mentions: Canonical mentions already collected from text
        explicit_mentions: Raw mention strings supplied by the caller

    Returns:
        New list with the merged mentions
    """
    merged = list(mentions)
    seen = set(merged)

    for explicit in explicit_mentions:
        normalized = normalize_mention_token(explicit)
        if normalized is None or normalized in seen:
            continue
        seen.add(normalized)
        merged.append(normalized)

    return merged


def has_mentions(text: str) -> bool:
    """
    Check if text contains any usable @mentions.

    Examples:
        >>> has_mentions("Check @AGENTS.md")
        True
        >>> has_mentions("Only @../escape here")
        False
    """
    return any(normalize_mention_token(m.group(1)) for m in MENTION_PATTERN.finditer(text))


def mention_to_relative_path(mention: str) -> str:
    """
    Strip the leading slash from a canonical mention.

    Examples:
        >>> mention_to_relative_path("/src/agent.py")
        'src/agent.py'
    """
    return mention[1:] if mention.startswith("/") else mention
