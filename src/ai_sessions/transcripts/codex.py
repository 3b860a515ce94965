"""Parse Codex CLI session transcripts into the canonical model.

Codex has written three layouts over time:

* event JSONL: ``session_meta`` / ``turn_context`` / ``response_item`` /
  ``event_msg`` wrappers around a ``payload``;
* direct JSONL: a ``{id, timestamp, git}`` header line, ``record_type: state``
  markers and bare ``message`` / ``function_call`` / ``reasoning`` items;
* a pretty-printed JSON document with ``session`` and ``items`` keys.

All three are normalized by the same item handler.
"""

from __future__ import annotations

import json
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
    ToolResultMetadata,
    ToolUseBlock,
    TranscriptLine,
    build_transcript,
)
from .base import (
    CHARACTERISTIC,
    UNIQUE,
    DetectionSample,
    RecordFold,
    Signal,
    as_int,
    fold_jsonl,
    parse_json_arguments,
    parse_user_instructions,
    require_entries,
    stable_line_id,
)

_LOGGER = logging.getLogger(__name__)

_TEXT_ITEM_TYPES = ("input_text", "output_text", "text")
_OPENROUTER_CLAUDE = re.compile(r"claude-([^/]+)")
_GEMINI = re.compile(r"gemini-([^/]+)")
_DATE_PART = re.compile(r"^\d+$")


def _coerce_records(value: Any) -> list[dict]:
    """Normalize parsed JSON payloads to a list of dict records."""
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [record for record in value if isinstance(record, dict)]
    return []


def _extract_records(raw: str) -> RecordFold:
    """Extract item dicts from either a full JSON session or JSONL."""
    stripped = raw.strip()
    if stripped.startswith("{") and "\n{" not in stripped:
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("items"), list):
            header = payload.get("session") if isinstance(payload.get("session"), dict) else {}
            # Present the document header like the JSONL header line
            records = [{**header, "_header": True}] if header else []
            records.extend(_coerce_records(payload["items"]))
            return RecordFold(records=records)
    return fold_jsonl(raw)


def _tool_result(output: Any) -> tuple[str, ToolResultMetadata | None]:
    """Normalize ``{"output": ..., "metadata": {...}}`` results to text plus metadata."""
    parsed = output
    if isinstance(output, str):
        try:
            parsed = json.loads(output)
        except json.JSONDecodeError:
            return output, None

    if isinstance(parsed, dict) and isinstance(parsed.get("output"), str):
        meta = parsed.get("metadata")
        metadata = None
        if isinstance(meta, dict):
            duration = meta.get("duration_seconds")
            metadata = ToolResultMetadata(
                exit_code=as_int(meta.get("exit_code")),
                duration_seconds=float(duration) if isinstance(duration, (int, float)) else None,
            )
        return parsed["output"], metadata
    if isinstance(output, str):
        return output, None
    if output is None:
        return "", None
    return json.dumps(parsed, indent=2, ensure_ascii=False), None


def _texts(entries: Any, entry_type: str) -> list[str]:
    if not isinstance(entries, list):
        return []
    return [
        entry["text"]
        for entry in entries
        if isinstance(entry, dict) and entry.get("type") == entry_type
        and isinstance(entry.get("text"), str) and entry["text"]
    ]


def _reasoning_text(item: dict) -> str:
    parts = _texts(item.get("summary"), "summary_text") or _texts(item.get("content"), "reasoning_text")
    return "\n".join(parts)


def _usage(info: Any) -> TokenUsage | None:
    if not isinstance(info, dict) or not isinstance(info.get("total_token_usage"), dict):
        return None
    total = info["total_token_usage"]
    return TokenUsage(
        input_tokens=as_int(total.get("input_tokens")),
        output_tokens=as_int(total.get("output_tokens")),
        cache_read_tokens=as_int(total.get("cached_input_tokens")),
        thinking_tokens=as_int(total.get("reasoning_output_tokens")),
    )


def format_codex_model(model_id: str) -> str | None:
    """Display names for OpenAI models, plus Claude/Gemini routed through Codex."""
    if not model_id:
        return None

    if model_id.startswith("gpt-"):
        parts = model_id.split("-")
        version = parts[1]
        variant = [part for part in parts[2:] if not _DATE_PART.match(part)]
        if not variant:
            return f"GPT-{version}"
        if variant[0] == "turbo":
            return f"GPT-{version} Turbo"
        if variant == ["o"]:
            return f"GPT-{version}o"
        return f"GPT-{version} " + " ".join(part.capitalize() for part in variant)

    match = _OPENROUTER_CLAUDE.search(model_id)
    if match:
        parts = match.group(1).split("-")
        if len(parts) >= 3:
            return f"Claude {parts[-1].capitalize()} {'.'.join(parts[:-1])}"

    match = _GEMINI.search(model_id)
    if match:
        return "Gemini " + " ".join(part.capitalize() for part in match.group(1).split("-"))

    return model_id


class _MessageBuilder:
    """Groups consecutive Codex items into role-homogeneous messages."""

    def __init__(self) -> None:
        self.lines: list[TranscriptLine] = []
        self.session_id = ""
        self.cwd = ""
        self.git_branch = ""
        self.model = ""
        self._role: str | None = None
        self._blocks: list[ContentBlock] = []
        self._timestamp = ""
        self._model = ""

    def open(self, role: str, timestamp: str) -> None:
        """Continue the current message, or flush it first if the role or model changes."""
        if self._role and (self._role != role or (role == "assistant" and self._model != self.model)):
            self.flush()
        if not self._role:
            self._role = role
            self._timestamp = timestamp
            self._model = self.model

    def add(self, *blocks: ContentBlock) -> None:
        self._blocks.extend(blocks)

    def flush(self) -> None:
        if self._role and self._blocks:
            model = self._model if self._role == "assistant" and self._model else None
            self.lines.append(TranscriptLine(
                kind=LineKind(self._role),
                uuid=stable_line_id("codex", self.session_id, len(self.lines)),
                timestamp=self._timestamp,
                parent_uuid=None,
                message=Message(role=self._role, content=list(self._blocks), model=model),
                cwd=self.cwd or None,
                git_branch=self.git_branch or None,
                session_id=self.session_id or None,
            ))
        self._role = None
        self._blocks = []


class CodexProvider:
    """Codex CLI sessions (``~/.codex/sessions/**/rollout-*.jsonl``)."""

    name = "codex"
    display_name = "Codex"

    def signals(self, sample: DetectionSample) -> list[Signal]:
        found: list[Signal] = []
        if isinstance(sample.document, dict) and isinstance(sample.document.get("items"), list):
            found.append(Signal("session-items-document", CHARACTERISTIC))
        for record in sample.records:
            record_type = record.get("type")
            payload = record.get("payload")
            if record_type == "session_meta" and isinstance(payload, dict) and isinstance(payload.get("id"), str):
                found.append(Signal("session_meta", UNIQUE))
            elif record_type == "turn_context":
                found.append(Signal("turn_context", UNIQUE))
            elif record_type == "response_item" and isinstance(payload, dict) and "type" in payload:
                found.append(Signal("response_item", UNIQUE))
            elif record_type == "event_msg" and isinstance(payload, dict):
                found.append(Signal("event_msg", CHARACTERISTIC))
            if record.get("record_type") == "state":
                found.append(Signal("record_type-state", UNIQUE))
            if record_type == "reasoning" and "encrypted_content" in record:
                found.append(Signal("encrypted-reasoning", UNIQUE))
            if record.get("git") and record.get("timestamp") and record.get("id") and not record_type:
                found.append(Signal("git-header", CHARACTERISTIC))
            if record_type in ("function_call", "function_call_output") and "call_id" in record:
                found.append(Signal("call_id", CHARACTERISTIC))
        return found

    def parse(self, raw: str) -> ParsedTranscript:
        records = _extract_records(raw).require(self.name)

        builder = _MessageBuilder()
        usage: TokenUsage | None = None
        last_timestamp = ""
        extra_timestamps: list[str] = []

        for entry in records:
            if entry.get("record_type") == "state":
                continue

            timestamp = entry.get("timestamp") if isinstance(entry.get("timestamp"), str) else ""
            if timestamp:
                last_timestamp = timestamp

            entry_type = entry.get("type")
            payload = entry.get("payload") if isinstance(entry.get("payload"), dict) else None

            # Older header line: {id, timestamp, git | instructions}
            if not entry_type and entry.get("id") and (
                "git" in entry or "instructions" in entry or entry.get("_header")
            ):
                builder.session_id = str(entry["id"])
                git = entry.get("git") if isinstance(entry.get("git"), dict) else {}
                builder.git_branch = git.get("branch") or ""
                if timestamp:
                    extra_timestamps.append(timestamp)
                continue

            if entry_type == "session_meta" and payload is not None:
                builder.session_id = str(payload.get("id") or builder.session_id)
                builder.cwd = payload.get("cwd") or builder.cwd
                git = payload.get("git") if isinstance(payload.get("git"), dict) else {}
                builder.git_branch = git.get("branch") or builder.git_branch
                extra_timestamps.append(payload.get("timestamp") or timestamp)
                continue

            if entry_type == "turn_context" and payload is not None:
                if payload.get("model"):
                    builder.model = str(payload["model"])
                if payload.get("cwd") and not builder.cwd:
                    builder.cwd = str(payload["cwd"])
                continue

            if entry_type == "event_msg":
                if payload is not None and payload.get("type") == "token_count":
                    usage = _usage(payload.get("info")) or usage
                continue

            if entry_type == "response_item":
                if payload is None:
                    continue
                item = payload
            else:
                item = entry

            self._handle_item(builder, item, timestamp or last_timestamp)

        builder.flush()

        return build_transcript(
            require_entries(builder.lines, self.name),
            session_id=builder.session_id,
            cwd=builder.cwd,
            usage=usage,
            extra_timestamps=tuple(extra_timestamps),
        )

    def _handle_item(self, builder: _MessageBuilder, item: dict, timestamp: str) -> None:
        item_type = item.get("type")

        if item_type == "message":
            role = item.get("role")
            if role not in ("user", "assistant"):
                return
            blocks: list[ContentBlock] = []
            content = item.get("content")
            for part in content if isinstance(content, list) else []:
                if not isinstance(part, dict) or part.get("type") not in _TEXT_ITEM_TYPES:
                    continue
                text = part.get("text")
                if not isinstance(text, str) or not text.strip():
                    continue
                if text.strip().startswith("<environment_context>"):
                    continue
                if part["type"] == "input_text":
                    blocks.extend(parse_user_instructions(text))
                else:
                    blocks.append(TextBlock(text=text))
            if blocks:
                builder.open(role, timestamp)
                builder.add(*blocks)

        elif item_type in ("function_call", "custom_tool_call"):
            name = item.get("name")
            call_id = item.get("call_id")
            if not name or not call_id:
                _LOGGER.debug("Skipping Codex tool call without name or call_id")
                return
            if item_type == "function_call":
                tool_input = parse_json_arguments(item.get("arguments"))
            else:
                raw_input = item.get("input")
                tool_input = parse_json_arguments(raw_input)
                if "raw" in tool_input and len(tool_input) == 1:
                    tool_input = {"input": raw_input}
            builder.open("assistant", timestamp)
            builder.add(ToolUseBlock(id=str(call_id), name=str(name), input=tool_input))

        elif item_type in ("function_call_output", "custom_tool_call_output"):
            call_id = item.get("call_id")
            if not call_id:
                return
            content, metadata = _tool_result(item.get("output"))
            # Results stay with the assistant turn that issued the call
            builder.open("assistant", timestamp)
            builder.add(ToolResultBlock(tool_use_id=str(call_id), content=content, metadata=metadata))

        elif item_type == "reasoning":
            text = _reasoning_text(item)
            if text:
                builder.open("assistant", timestamp)
                builder.add(ThinkingBlock(thinking=text))

    def format_model_name(self, model_id: str) -> str | None:
        return format_codex_model(model_id)

