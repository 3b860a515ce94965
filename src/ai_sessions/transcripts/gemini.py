"""Parse Gemini CLI session files (one JSON document) into the canonical model.

Gemini stores a session as::

    {"sessionId": ..., "projectHash": ..., "startTime": ..., "lastUpdated": ...,
     "messages": [{"id", "timestamp", "type": "user" | "gemini", "content",
                   "thoughts": [...], "toolCalls": [...], "model", "tokens"}]}

The file has no working directory, only ``projectHash`` (SHA-256 of the
project root), so the cwd is recovered by hashing the ancestors of absolute
paths that appear in tool-call arguments.
"""

from __future__ import annotations

import logging
from typing import Any

from ..paths import infer_project_path, is_absolute
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
    UNIQUE,
    DetectionSample,
    Signal,
    as_int,
    load_document,
    parse_json_arguments,
    require_entries,
    stable_line_id,
)

_LOGGER = logging.getLogger(__name__)

FUNCTION_RESPONSE_PREFIX = "[Function Response:"
_PATH_ARGUMENTS = ("file_path", "absolute_path", "path", "dir_path", "directory")


def format_gemini_model(model_id: str) -> str | None:
    """gemini-2.5-pro -> Gemini 2.5 Pro; other ids are returned unchanged."""
    if not model_id:
        return None
    if model_id.startswith("gemini-"):
        parts = model_id[len("gemini-"):].split("-")
        return "Gemini " + " ".join(part[:1].upper() + part[1:] for part in parts)
    return model_id


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _thinking(thought: dict) -> ThinkingBlock:
    text = f"{thought.get('subject', '')}\n\n{thought.get('description', '')}"
    return ThinkingBlock(thinking=text.replace("\\n", "\n").replace("\\t", "\t"))


def _result_text(call: dict) -> str | None:
    """Join functionResponse outputs and text parts; None when there are none."""
    parts: list[str] = []
    for item in _list(call.get("result")):
        if not isinstance(item, dict):
            continue
        if "functionResponse" in item:
            function_response = item.get("functionResponse")
            response = function_response.get("response") if isinstance(function_response, dict) else None
            if not isinstance(response, dict):
                _LOGGER.debug("Tool result %s has no response field", call.get("id"))
                continue
            output = response.get("output")
            if isinstance(output, str) and output:
                parts.append(output)
        elif isinstance(item.get("text"), str):
            parts.append(item["text"])
        else:
            _LOGGER.debug("Unrecognized Gemini tool result keys: %s", sorted(item))
    return "\n".join(parts) if parts else None


def _tool_blocks(calls: list[Any]) -> list[ContentBlock]:
    blocks: list[ContentBlock] = []
    for call in calls:
        if not isinstance(call, dict) or not call.get("name"):
            continue
        call_id = str(call.get("id", ""))
        blocks.append(ToolUseBlock(
            id=call_id,
            name=str(call["name"]),
            input=parse_json_arguments(call.get("args")),
        ))
        content = _result_text(call)
        if content is not None:
            blocks.append(ToolResultBlock(tool_use_id=call_id, content=content))
    return blocks


def _usage(tokens: Any) -> TokenUsage | None:
    if not isinstance(tokens, dict):
        return None
    usage = TokenUsage(
        input_tokens=as_int(tokens.get("input")),
        output_tokens=as_int(tokens.get("output")),
        cache_read_tokens=as_int(tokens.get("cached")),
        thinking_tokens=as_int(tokens.get("thoughts")),
        tool_tokens=as_int(tokens.get("tool")),
    )
    return None if usage.is_empty() else usage


def _session_usage(messages: list[Any]) -> TokenUsage | None:
    """Sum ``tokens`` over every message, including ones with nothing to render."""
    total = TokenUsage()
    for message in messages:
        usage = _usage(message.get("tokens")) if isinstance(message, dict) else None
        if usage is None:
            continue
        for name, value in vars(usage).items():
            if value is not None:
                setattr(total, name, (getattr(total, name) or 0) + value)
    return None if total.is_empty() else total


def _candidate_paths(messages: list[Any]) -> list[str]:
    candidates: list[str] = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        for call in _list(message.get("toolCalls")):
            args = call.get("args") if isinstance(call, dict) else None
            if not isinstance(args, dict):
                continue
            for key in _PATH_ARGUMENTS:
                value = args.get(key)
                if isinstance(value, str) and is_absolute(value):
                    candidates.append(value)
    return candidates


class GeminiProvider:
    """Gemini CLI sessions (``~/.gemini/tmp/<projectHash>/chats/*.json``)."""

    name = "gemini-cli"
    display_name = "Gemini CLI"

    def signals(self, sample: DetectionSample) -> list[Signal]:
        document = sample.document
        if not isinstance(document, dict):
            return []
        if not (
            document.get("sessionId")
            and document.get("projectHash")
            and document.get("startTime")
            and isinstance(document.get("messages"), list)
        ):
            return []
        messages = [message for message in document["messages"] if isinstance(message, dict)]
        if any(message.get("type") == "gemini" or isinstance(message.get("thoughts"), list)
               for message in messages):
            return [Signal("gemini-session", UNIQUE)]
        return [Signal("projectHash", CHARACTERISTIC)]

    def parse(self, raw: str) -> ParsedTranscript:
        session = load_document(raw, self.name)
        raw_messages = session.get("messages")
        if not isinstance(raw_messages, list):
            raw_messages = []
        session_id = str(session.get("sessionId") or "")

        lines: list[TranscriptLine] = []
        for index, entry in enumerate(raw_messages):
            if not isinstance(entry, dict):
                continue
            content = entry.get("content") if isinstance(entry.get("content"), str) else ""
            role = "assistant" if entry.get("type") == "gemini" else "user"

            # Tool output echoed back as a user turn; already in toolCalls
            if role == "user" and content.startswith(FUNCTION_RESPONSE_PREFIX):
                continue

            blocks: list[ContentBlock] = [
                _thinking(thought) for thought in _list(entry.get("thoughts"))
                if isinstance(thought, dict)
            ]
            if content.strip():
                blocks.append(TextBlock(text=content))
            blocks.extend(_tool_blocks(_list(entry.get("toolCalls"))))
            if not blocks:
                continue

            model = entry.get("model") if role == "assistant" else None
            if not isinstance(model, str) or not model:
                model = None
            lines.append(TranscriptLine(
                kind=LineKind(role),
                uuid=str(entry.get("id") or stable_line_id(self.name, session_id, index)),
                timestamp=str(entry.get("timestamp") or ""),
                parent_uuid=None,
                message=Message(role=role, content=blocks, model=model),
                session_id=session_id or None,
                usage=_usage(entry.get("tokens")),
            ))

        cwd = infer_project_path(
            str(session.get("projectHash") or ""),
            _candidate_paths(raw_messages),
        )
        return build_transcript(
            require_entries(lines, self.name),
            session_id=session_id,
            cwd=cwd,
            usage=_session_usage(raw_messages),
            extra_timestamps=(session.get("startTime"), session.get("lastUpdated")),
        )

    def format_model_name(self, model_id: str) -> str | None:
        return format_gemini_model(model_id)
