"""CLI entry points: ais providers, ais detect, ais parse, ais stats, ais patch, ais title, ais config."""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path

import click

from .config import Config
from .transcripts import ContentBlock, ThinkingBlock, ToolResultBlock, ToolUseBlock, TranscriptError

_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def _provider_choice() -> click.Choice:
    from .transcripts.registry import available_providers

    return click.Choice(available_providers())


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """ai-sessions: normalize AI coding-assistant session logs."""
    ctx.ensure_object(dict)
    config = Config.load()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj["config"] = config


@cli.command()
def providers() -> None:
    """List the supported transcript sources."""
    from .transcripts.registry import PROVIDERS

    for provider in PROVIDERS:
        click.echo(f"{provider.name:<14} {provider.display_name}")


@cli.command()
@click.argument("file", type=_FILE)
@click.option("--json", "as_json", is_flag=True, help="Output the result as JSON")
@click.pass_context
def detect(ctx: click.Context, file: Path, as_json: bool) -> None:
    """Guess which tool produced FILE."""
    from .transcripts.detect import detect_provider
    from .transcripts.registry import decode

    result = detect_provider(decode(file.read_bytes()), ctx.obj["config"])

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    if not result.recognized:
        click.echo(f"Unrecognized format (falling back to {result.provider})")
        return
    signals = ", ".join(signal.name for signal in result.signals)
    click.echo(f"{result.provider} ({result.confidence.value} confidence: {signals})")


@cli.command()
@click.argument("file", type=_FILE)
@click.option("--provider", type=_provider_choice(), help="Parse as this provider instead of detecting")
@click.option("--json", "as_json", is_flag=True, help="Output the canonical transcript as JSON")
@click.pass_context
def parse(ctx: click.Context, file: Path, provider: str | None, as_json: bool) -> None:
    """Parse FILE into the canonical transcript."""
    from .transcripts.registry import parse_transcript

    try:
        parsed = parse_transcript(file.read_bytes(), provider, ctx.obj["config"])
    except TranscriptError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(parsed.to_dict(), indent=2, ensure_ascii=False))
        return

    click.echo(f"Session {parsed.session_id or '?'}: {parsed.metadata.message_count} line(s), "
               f"{parsed.metadata.first_timestamp or '?'} to {parsed.metadata.last_timestamp or '?'}")
    for line in parsed.messages:
        if line.message is None:
            click.echo(f"  [{line.kind.value}]")
            continue
        parts = [_summarize_block(block, parsed.cwd) for block in line.message.blocks()]
        click.echo(f"  {line.message.role:>9}: {' '.join(part for part in parts if part)}")


def _summarize_block(block: ContentBlock, cwd: str | None) -> str:
    """Create a one-line summary of a content block."""
    from .transcripts.tools import tool_input_summary

    if isinstance(block, ToolUseBlock):
        return tool_input_summary(block, cwd)
    if isinstance(block, ToolResultBlock):
        return "[result: error]" if block.is_error else "[result]"
    if isinstance(block, ThinkingBlock):
        return "[thinking]"
    first_line = block.text.strip().split("\n")[0]
    return first_line[:80]


@cli.command()
@click.argument("file", type=_FILE)
@click.option("--provider", type=_provider_choice(), help="Parse as this provider instead of detecting")
@click.pass_context
def stats(ctx: click.Context, file: Path, provider: str | None) -> None:
    """Print message counts, model mix and token totals for FILE as JSON."""
    from .metadata import calculate_metadata
    from .transcripts.detect import detect_provider
    from .transcripts.registry import decode, parse_transcript

    config = ctx.obj["config"]
    text = decode(file.read_bytes())
    try:
        parsed = parse_transcript(text, provider, config)
    except TranscriptError as e:
        raise click.ClickException(str(e)) from e

    name = provider or detect_provider(text, config).provider
    click.echo(json.dumps(calculate_metadata(parsed, provider=name).to_dict(), indent=2))


@cli.command()
@click.argument("file", type=_FILE)
def patch(file: Path) -> None:
    """Print the file changed by an apply_patch payload in FILE as JSON."""
    from .patch import parse_patch

    files = parse_patch(file.read_text(encoding="utf-8", errors="replace"))
    if not files:
        raise click.ClickException(f"No Add File or Update File block found in {file}")
    click.echo(json.dumps([parsed.to_dict() for parsed in files], indent=2, ensure_ascii=False))


@cli.command(name="title")
@click.argument("title", required=False)
@click.option("--provider", type=_provider_choice(), default="claude-code", show_default=True)
@click.option("--date", "created", type=click.DateTime(formats=["%Y-%m-%d"]), help="Session date (default: today)")
def title_cmd(title: str | None, provider: str, created) -> None:
    """Keep TITLE if a human wrote it, otherwise print the default title."""
    from .titles import resolve_title

    created_at = created.date() if created else date.today()
    click.echo(resolve_title(title, provider, created_at))


@cli.command(name="config")
@click.option("--init", is_flag=True, help="Create the env file from a template if missing")
@click.pass_context
def show_config(ctx: click.Context, init: bool) -> None:
    """Show the resolved configuration."""
    config = ctx.obj["config"]

    if init:
        if config.ensure_env_file():
            click.echo(f"Created {config.env_file}")
        else:
            click.echo(f"{config.env_file} already exists")

    click.echo(f"Env file:          {config.env_file}{'' if config.env_file.exists() else ' (missing)'}")
    click.echo(f"Default provider:  {config.default_provider}")
    click.echo(f"Detect lines:      {config.detect_sample_lines}")
    click.echo(f"Log level:         {config.log_level}")
