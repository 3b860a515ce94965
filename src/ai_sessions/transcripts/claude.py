"""Parse Claude Code transcript JSONL files into the canonical model."""

from __future__ import annotations

import logging
import re
from typing import Any

from . import (
    ContentBlock,
    LineKind,
    Message,
    ParsedTranscript,
    TextBlock,
    ThinkingBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
    TranscriptLine,
    build_transcript,
)
from .base import (
    CHARACTERISTIC,
    GENERIC,
    UNIQUE,
    DetectionSample,
    Signal,
    as_int,
    flatten_result,
    fold_jsonl,
    parse_bash_tags,
    parse_command_tags,
    require_entries,
    stable_line_id,
)

_LOGGER = logging.getLogger(__name__)

_FAMILY_FIRST = re.compile(r"^claude-(opus|sonnet|haiku)-(\d+(?:-\d+)?)-\d{8}$")
_VERSION_FIRST = re.compile(r"^claude-(\d+)-(\d+)-(opus|sonnet|haiku)-\d{8}$")


def format_claude_model(model_id: str) -> str | None:
    """Map raw Claude model ids to display names.

    claude-opus-4-20250514 -> Claude Opus 4
    claude-sonnet-4-5-20250929 -> Claude Sonnet 4.5
    claude-3-5-sonnet-20241022 -> Claude Sonnet 3.5
    """
    if not model_id or "synthetic" in model_id:
        return None
    match = _FAMILY_FIRST.match(model_id)
    if match:
        family, version = match.groups()
        return f"Claude {family.capitalize()} {version.replace('-', '.', 1)}"
    match = _VERSION_FIRST.match(model_id)
    if match:
        major, minor, family = match.groups()
        return f"Claude {family.capitalize()} {major}.{minor}"
    return model_id


def _usage(raw: Any) -> TokenUsage | None:
    if not isinstance(raw, dict):
        return None
    usage = TokenUsage(
        input_tokens=as_int(raw.get("input_tokens")),
        output_tokens=as_int(raw.get("output_tokens")),
        cache_read_tokens=as_int(raw.get("cache_read_input_tokens")),
        cache_write_tokens=as_int(raw.get("cache_creation_input_tokens")),
    )
    return None if usage.is_empty() else usage


def _convert_block(block: Any) -> ContentBlock | None:
    """Convert one raw Claude content block; None for shapes we do not render."""
    if isinstance(block, str):
        return TextBlock(text=block)
    if not isinstance(block, dict):
        return None

    block_type = block.get("type", "")
    if block_type == "text":
        text = block.get("text", "")
        return TextBlock(text=text) if isinstance(text, str) else None
    if block_type == "thinking":
        thinking = block.get("thinking", "")
        return ThinkingBlock(thinking=thinking) if isinstance(thinking, str) else None
    if block_type == "tool_use":
        tool_input = block.get("input")
        return ToolUseBlock(
            id=str(block.get("id", "")),
            name=str(block.get("name", "unknown")),
            input=tool_input if isinstance(tool_input, dict) else {"value": tool_input},
        )
    if block_type == "tool_result":
        is_error = block.get("is_error")
        return ToolResultBlock(
            tool_use_id=str(block.get("tool_use_id", "")),
            content=flatten_result(block.get("content")),
            is_error=is_error if isinstance(is_error, bool) else None,
        )
    if isinstance(block.get("text"), str):
        return TextBlock(text=block["text"])

    _LOGGER.debug("Dropping unsupported Claude content block type %r", block_type)
    return None


def _convert_content(content: Any) -> str | list[ContentBlock]:
    """Normalize message content, expanding slash-command and bash tags."""
    if isinstance(content, str):
        return parse_command_tags(content) or parse_bash_tags(content) or content

    if not isinstance(content, list):
        return ""

    blocks = [converted for converted in map(_convert_block, content) if converted is not None]
    if len(blocks) == 1 and isinstance(blocks[0], TextBlock):
        text = blocks[0].text
        return parse_command_tags(text) or parse_bash_tags(text) or blocks
    return blocks


def _snapshot_line(entry: dict, index: int, session_id: str) -> TranscriptLine:
    snapshot = entry.get("snapshot") if isinstance(entry.get("snapshot"), dict) else {}
    return TranscriptLine(
        kind=LineKind.SNAPSHOT,
        uuid=str(entry.get("messageId") or stable_line_id("claude-code", session_id, index)),
        timestamp=str(snapshot.get("timestamp") or entry.get("timestamp") or ""),
        parent_uuid=None,
    )


class ClaudeCodeProvider:
    """Claude Code session logs (``~/.claude/projects/*/<session>.jsonl``)."""

    name = "claude-code"
    display_name = "Claude Code"

    def signals(self, sample: DetectionSample) -> list[Signal]:
        found: list[Signal] = []
        for record in sample.records:
            if record.get("type") == "file-history-snapshot":
                found.append(Signal("file-history-snapshot", UNIQUE))
            if "parentUuid" in record:
                found.append(Signal("parentUuid", CHARACTERISTIC))
            message = record.get("message")
            if isinstance(message, dict):
                content = message.get("content")
                if isinstance(content, list) and any(
                    isinstance(block, dict) and block.get("type") == "thinking" for block in content
                ):
                    found.append(Signal("thinking-block", CHARACTERISTIC))
                if message.get("role") in ("user", "assistant"):
                    found.append(Signal("message-role", GENERIC))
        return found

    def parse(self, raw: str) -> ParsedTranscript:
        records = fold_jsonl(raw).require(self.name)

        lines: list[TranscriptLine] = []
        session_id = ""
        cwd = ""

        for index, entry in enumerate(records):
            if not session_id and isinstance(entry.get("sessionId"), str):
                session_id = entry["sessionId"]
            if not cwd and isinstance(entry.get("cwd"), str):
                cwd = entry["cwd"]

            entry_type = entry.get("type")
            if entry_type == "file-history-snapshot":
                lines.append(_snapshot_line(entry, index, session_id))
                continue

            # Summary, system and progress entries have no message to render
            msg = entry.get("message")
            if not isinstance(msg, dict):
                continue
            role = msg.get("role", entry_type)
            if role not in ("user", "assistant"):
                continue

            model = msg.get("model") if role == "assistant" else None
            lines.append(TranscriptLine(
                kind=LineKind(role),
                uuid=str(entry.get("uuid") or stable_line_id(self.name, session_id, index)),
                timestamp=str(entry.get("timestamp") or ""),
                parent_uuid=entry.get("parentUuid") if isinstance(entry.get("parentUuid"), str) else None,
                message=Message(
                    role=role,
                    content=_convert_content(msg.get("content", "")),
                    model=model if isinstance(model, str) and model else None,
                ),
                cwd=entry.get("cwd") if isinstance(entry.get("cwd"), str) else None,
                git_branch=entry.get("gitBranch") or None,
                session_id=entry.get("sessionId") or None,
                tool_result_raw=entry.get("toolUseResult"),
                usage=_usage(msg.get("usage")) if role == "assistant" else None,
            ))

        return build_transcript(require_entries(lines, self.name), session_id=session_id, cwd=cwd)

    def format_model_name(self, model_id: str) -> str | None:
        return format_claude_model(model_id)
