"""Mention loading library for workspace-scoped @file references.

This library resolves @mentions in a user message against a sandboxed
workspace root, loads the referenced files under size budgets, and
renders a context block to prepend to the message.
"""

from .loader import WorkspaceMentionLoader
from .loader import build_workspace_mention_context
from .loader import build_workspace_mention_context_sync
from .models import MentionedWorkspaceFile
from .models import MentionLimits
from .models import SkippedMention
from .models import WorkspaceMentionContext
from .renderer import build_message_with_mention_context
from .renderer import render_context_block
from .resolver import WorkspaceSandbox

__all__ = [
    "MentionLimits",
    "MentionedWorkspaceFile",
    "SkippedMention",
    "WorkspaceMentionContext",
    "WorkspaceMentionLoader",
    "WorkspaceSandbox",
    "build_message_with_mention_context",
    "build_workspace_mention_context",
    "build_workspace_mention_context_sync",
    "render_context_block",
]
