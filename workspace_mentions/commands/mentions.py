"""Mention context commands.

Runs the mention-loading engine against a workspace and shows what would be
injected ahead of a message.
"""

from pathlib import Path

import click
from pydantic import ValidationError
from rich.table import Table

from ..console import console
from ..display.formatters import format_byte_size
from ..display.formatters import format_context_summary
from ..lib.mention_loading import MentionLimits
from ..lib.mention_loading import WorkspaceMentionContext
from ..lib.mention_loading import build_message_with_mention_context
from ..lib.mention_loading import build_workspace_mention_context_sync
from ..settings import MentionSettings
from ..utils.error_format import escape_markup
from ..utils.error_format import format_error_message


def _load_limits(settings: MentionSettings) -> MentionLimits:
    try:
        return settings.get_limits()
    except ValidationError as e:
        raise click.ClickException(f"Invalid mention limits in settings: {e}") from e


def _run_engine(message: str, workspace: Path, mentions: tuple[str, ...]) -> WorkspaceMentionContext:
    limits = _load_limits(MentionSettings())
    try:
        return build_workspace_mention_context_sync(message, workspace, list(mentions), limits)
    except (TypeError, ValueError) as e:
        raise click.ClickException(format_error_message(e)) from e


def _render_result(context: WorkspaceMentionContext, show_block: bool) -> None:
    console.print(f"[bold]{format_context_summary(context)}[/bold]")

    if context.files:
        table = Table(title="Loaded Files", show_header=True, header_style="bold cyan")
        table.add_column("Mention", style="green")
        table.add_column("Size", justify="right")
        table.add_column("Chars", justify="right")
        table.add_column("Truncated", style="yellow")
        for f in context.files:
            table.add_row(
                escape_markup(f.mention),
                format_byte_size(f.bytes),
                f"{len(f.content):,}",
                "yes" if f.truncated else "",
            )
        console.print(table)

    if context.skipped:
        table = Table(title="Skipped Mentions", show_header=True, header_style="bold yellow")
        table.add_column("Mention", style="green")
        table.add_column("Reason", style="white")
        for s in context.skipped:
            table.add_row(escape_markup(s.mention), escape_markup(s.reason))
        console.print(table)

    if show_block and context.context_block:
        console.print()
        console.print(context.context_block, markup=False, highlight=False, soft_wrap=True)


workspace_option = click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Workspace root that mentions are sandboxed to",
)
mention_option = click.option(
    "--mention",
    "-m",
    "mentions",
    multiple=True,
    help="Extra mention to load in addition to inline @tokens (repeatable)",
)


@click.command("context")
@click.argument("message")
@workspace_option
@mention_option
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--show-block/--no-show-block", default=True, help="Print the rendered context block")
def context_cmd(message: str, workspace: Path, mentions: tuple[str, ...], as_json: bool, show_block: bool):
    """Resolve @mentions in MESSAGE and show what would be loaded.

    Examples:
        workspace-mentions context "Review @src/agent.py"
        workspace-mentions context "Please review" -m src/index.ts --json
    """
    context = _run_engine(message, workspace.resolve(), mentions)

    if as_json:
        click.echo(context.model_dump_json(by_alias=True, indent=2))
        return

    _render_result(context, show_block)


@click.command("compose")
@click.argument("message")
@workspace_option
@mention_option
def compose_cmd(message: str, workspace: Path, mentions: tuple[str, ...]):
    """Print MESSAGE with the referenced files prepended as context."""
    context = _run_engine(message, workspace.resolve(), mentions)
    click.echo(build_message_with_mention_context(message, context.context_block))


@click.command("limits")
def limits_cmd():
    """Show effective mention limits and where each value comes from.

    Displays merged configuration from all scopes (local > project > user).
    """
    settings = MentionSettings()
    limits = _load_limits(settings)
    sources = settings.get_limit_sources()

    table = Table(title="Mention Limits", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="yellow")
    table.add_column("Value", style="white", justify="right")
    table.add_column("Source", style="dim")
    for name, value in limits.model_dump().items():
        table.add_row(name, f"{value:,}", sources.get(name, "default"))

    console.print(table)


@click.command("set-limit")
@click.argument("name", type=click.Choice(sorted(MentionLimits.model_fields)))
@click.argument("value", type=int)
@click.option("--local", "scope_flag", flag_value="local", help="Set locally (just you)")
@click.option("--project", "scope_flag", flag_value="project", help="Set for project (team)")
@click.option("--global", "scope_flag", flag_value="user", help="Set globally (all projects)")
def set_limit_cmd(name: str, value: int, scope_flag: str | None):
    """Persist a mention limit in a settings scope (default: local)."""
    scope = scope_flag or "local"
    try:
        MentionSettings().set_limit(name, value, scope)
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid value for {name}: {value}") from e

    console.print(f"[green]✓ Set {name} = {value:,} ({scope})[/green]")
