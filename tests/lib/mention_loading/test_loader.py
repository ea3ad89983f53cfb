"""Tests for budgeted mention loading."""

import os
from pathlib import Path

import pytest

from workspace_mentions.lib.mention_loading import MentionLimits
from workspace_mentions.lib.mention_loading import WorkspaceMentionLoader
from workspace_mentions.lib.mention_loading import build_workspace_mention_context
from workspace_mentions.lib.mention_loading import build_workspace_mention_context_sync
from workspace_mentions.lib.mention_loading.loader import BINARY_REASON
from workspace_mentions.lib.mention_loading.loader import BUDGET_EXHAUSTED_REASON
from workspace_mentions.lib.mention_loading.loader import DIRECTORY_REASON
from workspace_mentions.lib.mention_loading.loader import is_likely_binary
from workspace_mentions.lib.mention_loading.loader import truncate_text
from workspace_mentions.lib.mention_loading.models import TRUNCATION_MARKER
from workspace_mentions.lib.mention_loading.resolver import OUTSIDE_ROOT_REASON


class TestScenarios:
    """End-to-end behavior of build_workspace_mention_context()."""

    @pytest.mark.asyncio
    async def test_loads_mentioned_file_into_context_block(self, workspace, write_file):
        write_file("src/agent.ts", 'export const agent = "ok"\n')

        result = await build_workspace_mention_context("Review @src/agent.ts for issues", str(workspace))

        assert result.mentions == ["/src/agent.ts"]
        assert len(result.files) == 1
        assert result.files[0].relative_path == "/src/agent.ts"
        assert result.files[0].absolute_path == str(workspace / "src" / "agent.ts")
        assert result.files[0].bytes == len('export const agent = "ok"\n')
        assert result.files[0].truncated is False
        assert result.skipped == []
        assert "Referenced Workspace Files" in result.context_block
        assert 'export const agent = "ok"' in result.context_block

    @pytest.mark.asyncio
    async def test_ignores_email_and_traversal(self, workspace, write_file):
        write_file("README.md", "hello\n")

        result = await build_workspace_mention_context(
            "Email me at dev@example.com and check @../secret plus @README.md", workspace
        )

        assert result.mentions == ["/README.md"]
        assert [f.relative_path for f in result.files] == ["/README.md"]
        assert result.skipped == []

    @pytest.mark.asyncio
    async def test_explicit_mentions_load_like_inline(self, workspace, write_file):
        write_file("src/index.ts", "export {}\n")

        result = await build_workspace_mention_context(
            "Please review this", workspace, explicit_mentions=["/src/index.ts"]
        )

        assert result.mentions == ["/src/index.ts"]
        assert [f.relative_path for f in result.files] == ["/src/index.ts"]
        assert result.files[0].content == "export {}\n"

    @pytest.mark.asyncio
    async def test_explicit_mentions_follow_inline_and_dedupe(self, workspace, write_file):
        write_file("a.md", "a")
        write_file("b.md", "b")

        result = await build_workspace_mention_context("see @b.md", workspace, explicit_mentions=["./b.md", "a.md"])

        assert result.mentions == ["/b.md", "/a.md"]
        assert [f.mention for f in result.files] == ["/b.md", "/a.md"]

    @pytest.mark.asyncio
    async def test_oversized_file_skipped_without_reading(self, workspace, write_file):
        write_file("big.log", "x" * (300 * 1024))

        result = await build_workspace_mention_context("@big.log", workspace)

        assert result.files == []
        assert result.context_block is None
        assert len(result.skipped) == 1
        assert result.skipped[0].mention == "/big.log"
        assert result.skipped[0].reason == "File exceeds size limit (262144 bytes)."

    @pytest.mark.asyncio
    async def test_no_mentions_returns_empty_result(self, workspace):
        result = await build_workspace_mention_context("nothing to see", workspace)

        assert result.mentions == []
        assert result.files == []
        assert result.skipped == []
        assert result.context_block is None


class TestSkipReasons:
    """Each failure mode lands in skipped with its own reason."""

    @pytest.mark.asyncio
    async def test_missing_file(self, workspace):
        result = await build_workspace_mention_context("@nope.md", workspace)

        assert result.files == []
        assert result.skipped[0].mention == "/nope.md"
        assert "No such file or directory" in result.skipped[0].reason

    @pytest.mark.asyncio
    async def test_directory(self, workspace):
        (workspace / "src").mkdir()

        result = await build_workspace_mention_context("@src", workspace)

        assert result.skipped[0].reason == DIRECTORY_REASON

    @pytest.mark.asyncio
    async def test_binary_file(self, workspace, write_file):
        write_file("image.png", b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")

        result = await build_workspace_mention_context("@image.png", workspace)

        assert result.skipped[0].reason == BINARY_REASON

    @pytest.mark.asyncio
    async def test_null_byte_after_sample_is_text(self, workspace, write_file):
        write_file("late.txt", b"a" * 4096 + b"\x00")

        result = await build_workspace_mention_context("@late.txt", workspace)

        assert len(result.files) == 1

    @pytest.mark.asyncio
    async def test_empty_file_loads(self, workspace, write_file):
        write_file("empty.txt", "")

        result = await build_workspace_mention_context("@empty.txt", workspace)

        assert result.files[0].content == ""
        assert result.files[0].bytes == 0

    @pytest.mark.asyncio
    async def test_escape_via_double_slash(self, workspace):
        result = await build_workspace_mention_context("@//etc/passwd", workspace)

        assert result.mentions == ["//etc/passwd"]
        assert result.skipped[0].reason == OUTSIDE_ROOT_REASON
        assert result.files == []

    @pytest.mark.asyncio
    async def test_symlink_escape(self, workspace):
        secret = workspace.parent / "work2" / "secret.txt"
        secret.write_text("secret")
        try:
            (workspace / "link.txt").symlink_to(secret)
        except (OSError, NotImplementedError):
            pytest.skip("cannot create symlinks")

        result = await build_workspace_mention_context("@link.txt", workspace)

        assert result.files == []
        assert result.skipped[0].reason == OUTSIDE_ROOT_REASON

    @pytest.mark.asyncio
    async def test_invalid_utf8_replaced(self, workspace, write_file):
        write_file("latin1.txt", "café".encode("latin-1"))

        result = await build_workspace_mention_context("@latin1.txt", workspace)

        assert result.files[0].content == "caf\ufffd"
        assert result.files[0].bytes == 4

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_other_mentions(self, workspace, write_file):
        write_file("ok.md", "fine")
        (workspace / "dir").mkdir()

        result = await build_workspace_mention_context("@missing.md @dir @ok.md", workspace)

        assert [f.mention for f in result.files] == ["/ok.md"]
        assert [s.mention for s in result.skipped] == ["/missing.md", "/dir"]

    @pytest.mark.asyncio
    async def test_null_byte_path_skipped(self, workspace, write_file):
        write_file("ok.md", "fine")

        result = await build_workspace_mention_context("@ok.md @bad\x00name.txt", workspace)

        assert [f.mention for f in result.files] == ["/ok.md"]
        assert [s.mention for s in result.skipped] == ["/bad\x00name.txt"]
        assert "null" in result.skipped[0].reason

    @pytest.mark.asyncio
    async def test_lone_surrogate_mention_ignored(self, workspace, write_file):
        write_file("ok.md", "fine")

        result = await build_workspace_mention_context("@ok.md @bad\ud800.txt", workspace)

        assert result.mentions == ["/ok.md"]
        assert [f.mention for f in result.files] == ["/ok.md"]
        assert result.skipped == []


class TestBudgets:
    """Mention cap, per-file and per-message character budgets."""

    @pytest.mark.asyncio
    async def test_mention_cap(self, workspace, write_file):
        for i in range(10):
            write_file(f"f{i}.txt", str(i))
        message = " ".join(f"@f{i}.txt" for i in range(10))

        result = await build_workspace_mention_context(message, workspace)

        assert len(result.mentions) == 10
        assert [f.mention for f in result.files] == [f"/f{i}.txt" for i in range(8)]
        assert [s.mention for s in result.skipped] == ["/f8.txt", "/f9.txt"]
        assert {s.reason for s in result.skipped} == {"Only 8 @file references can be loaded per message."}

    @pytest.mark.asyncio
    async def test_over_cap_mentions_never_touch_filesystem(self, workspace, write_file, monkeypatch):
        for i in range(8):
            write_file(f"f{i}.txt", str(i))
        message = " ".join(f"@f{i}.txt" for i in range(8)) + " @missing.txt"

        stat_calls: list[str] = []
        real_stat = os.stat

        def tracking_stat(path, *args, **kwargs):
            stat_calls.append(os.fspath(path))
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(os, "stat", tracking_stat)

        result = await build_workspace_mention_context(message, workspace)

        assert result.skipped[-1].mention == "/missing.txt"
        assert not any(p.endswith("missing.txt") for p in stat_calls)

    @pytest.mark.asyncio
    async def test_per_file_truncation(self, workspace, write_file):
        write_file("long.txt", "a" * 20_000)

        result = await build_workspace_mention_context("@long.txt", workspace)

        loaded = result.files[0]
        assert loaded.truncated is True
        assert loaded.bytes == 20_000
        assert loaded.content == "a" * 14_000 + TRUNCATION_MARKER
        assert "(truncated)" in result.context_block

    @pytest.mark.asyncio
    async def test_exact_per_file_limit_not_truncated(self, workspace, write_file):
        write_file("exact.txt", "a" * 14_000)

        result = await build_workspace_mention_context("@exact.txt", workspace)

        assert result.files[0].truncated is False
        assert len(result.files[0].content) == 14_000

    @pytest.mark.asyncio
    async def test_global_budget_truncates(self, workspace, write_file):
        for i in range(5):
            write_file(f"chunk{i}.txt", "b" * 13_000)
        message = " ".join(f"@chunk{i}.txt" for i in range(5))

        result = await build_workspace_mention_context(message, workspace)

        # 4 x 13,000 = 52,000; the fifth file gets what is left of the 60,000 budget
        assert [f.truncated for f in result.files] == [False, False, False, False, True]
        assert result.files[4].content == "b" * (8_000 - 16) + TRUNCATION_MARKER
        assert result.skipped == []

    @pytest.mark.asyncio
    async def test_global_budget_exhausted_skips(self, workspace, write_file):
        for i in range(6):
            write_file(f"chunk{i}.txt", "b" * 12_000)
        message = " ".join(f"@chunk{i}.txt" for i in range(6))

        result = await build_workspace_mention_context(message, workspace)

        assert len(result.files) == 5
        assert not any(f.truncated for f in result.files)
        assert [s.mention for s in result.skipped] == ["/chunk5.txt"]
        assert result.skipped[0].reason == BUDGET_EXHAUSTED_REASON

    @pytest.mark.asyncio
    async def test_total_chars_bounded(self, workspace, write_file):
        for i in range(8):
            write_file(f"big{i}.txt", "c" * 30_000)
        message = " ".join(f"@big{i}.txt" for i in range(8))

        result = await build_workspace_mention_context(message, workspace)

        assert result.total_chars <= 60_000 + len(TRUNCATION_MARKER)
        # Earlier mentions are favored; the sixth only has room for the marker
        assert [f.mention for f in result.files] == [f"/big{i}.txt" for i in range(6)]
        assert result.files[5].content == TRUNCATION_MARKER
        assert [s.mention for s in result.skipped] == ["/big6.txt", "/big7.txt"]
        assert {s.reason for s in result.skipped} == {BUDGET_EXHAUSTED_REASON}

    @pytest.mark.asyncio
    async def test_custom_limits(self, workspace, write_file):
        write_file("a.txt", "a" * 50)
        write_file("b.txt", "b" * 50)
        limits = MentionLimits(max_mentioned_files=1, max_file_chars=10)

        result = await build_workspace_mention_context("@a.txt @b.txt", workspace, limits=limits)

        assert result.files[0].content == "a" * 10 + TRUNCATION_MARKER
        assert result.skipped[0].reason == "Only 1 @file references can be loaded per message."

    @pytest.mark.asyncio
    async def test_custom_byte_limit_reason(self, workspace, write_file):
        write_file("a.txt", "a" * 11)

        result = await build_workspace_mention_context(
            "@a.txt", workspace, limits=MentionLimits(max_file_bytes=10)
        )

        assert result.skipped[0].reason == "File exceeds size limit (10 bytes)."


class TestDeterminism:
    @pytest.mark.asyncio
    async def test_repeated_calls_identical(self, workspace, write_file):
        for i in range(6):
            write_file(f"d{i}.txt", "z" * (i * 9_000))
        (workspace / "folder").mkdir()
        message = "@folder " + " ".join(f"@d{i}.txt" for i in range(6)) + " @nope @x/../d1.txt"

        first = await build_workspace_mention_context(message, workspace)
        second = await build_workspace_mention_context(message, workspace)

        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_output_follows_discovery_order(self, workspace, write_file):
        write_file("z.txt", "z")
        write_file("a.txt", "a")

        result = await build_workspace_mention_context("@z.txt @missing @a.txt", workspace)

        assert [f.mention for f in result.files] == ["/z.txt", "/a.txt"]
        assert result.mentions == ["/z.txt", "/missing", "/a.txt"]


class TestCallerMisuse:
    @pytest.mark.asyncio
    async def test_non_string_message(self, workspace):
        with pytest.raises(TypeError):
            await build_workspace_mention_context(None, workspace)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("workspace_path", ["", None])
    async def test_missing_workspace(self, workspace_path):
        with pytest.raises(ValueError):
            await build_workspace_mention_context("@a.md", workspace_path)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_explicit_mentions_must_be_strings(self, workspace):
        with pytest.raises(TypeError):
            await build_workspace_mention_context("hi", workspace, explicit_mentions=[1])  # type: ignore[list-item]

    @pytest.mark.asyncio
    async def test_explicit_mentions_must_be_sequence(self, workspace):
        with pytest.raises(TypeError):
            await build_workspace_mention_context("hi", workspace, explicit_mentions="a.md")  # type: ignore[arg-type]


class TestLoaderDirect:
    @pytest.mark.asyncio
    async def test_loader_accepts_path_object(self, workspace: Path, write_file):
        write_file("a.md", "alpha")
        loader = WorkspaceMentionLoader(workspace)

        result = await loader.load(["/a.md"])

        assert result.files[0].content == "alpha"

    def test_sync_wrapper(self, workspace, write_file):
        write_file("a.md", "alpha")

        result = build_workspace_mention_context_sync("@a.md", workspace)

        assert result.files[0].content == "alpha"


class TestHelpers:
    def test_is_likely_binary(self):
        assert not is_likely_binary(b"")
        assert not is_likely_binary(b"text only")
        assert is_likely_binary(b"ab\x00cd")
        assert not is_likely_binary(b"ab\x00", sample_size=2)

    def test_truncate_text(self):
        assert truncate_text("abc", 3) == ("abc", False)
        assert truncate_text("abcd", 3) == ("abc" + TRUNCATION_MARKER, True)
