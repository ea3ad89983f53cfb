"""Data models for mention loading."""

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic.alias_generators import to_camel

TRUNCATION_MARKER = "\n\n[Truncated]"


class MentionLimits(BaseModel):
    """Budgets applied to a single mention-loading invocation.

    The defaults are the values existing callers depend on; override them
    through the ``mentions:`` section of settings.yaml.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_mentioned_files: int = Field(default=8, gt=0, description="Mentions loaded per message")
    max_file_bytes: int = Field(default=256 * 1024, gt=0, description="Largest file read, in bytes")
    max_file_chars: int = Field(default=14_000, gt=0, description="Characters kept from a single file")
    max_total_context_chars: int = Field(
        default=60_000, gt=0, description="Characters kept across all files of one message"
    )
    binary_sample_bytes: int = Field(default=4096, gt=0, description="Leading bytes scanned for NUL")


class _MentionModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class MentionedWorkspaceFile(_MentionModel):
    """A mention that resolved to loadable text.

    Attributes:
        mention: Canonical mention string ('/src/agent.py')
        relative_path: Workspace-relative path, identical to the mention
        absolute_path: Absolute path that was read
        bytes: Byte length of the file as read, before any truncation
        truncated: Whether content was cut by the per-file or global budget
        content: Text content, possibly ending in the truncation marker
    """

    mention: str
    relative_path: str
    absolute_path: str
    bytes: int
    truncated: bool
    content: str


class SkippedMention(_MentionModel):
    """A mention that could not be loaded, with a user-facing reason."""

    mention: str
    reason: str


class WorkspaceMentionContext(_MentionModel):
    """Aggregate result of one mention-loading invocation."""

    mentions: list[str] = Field(default_factory=list)
    files: list[MentionedWorkspaceFile] = Field(default_factory=list)
    skipped: list[SkippedMention] = Field(default_factory=list)
    context_block: str | None = None

    @property
    def has_context(self) -> bool:
        return self.context_block is not None

    @property
    def total_chars(self) -> int:
        """Characters of file content injected into the context block."""
        return sum(len(f.content) for f in self.files)
