"""Parse Mistral Vibe session files (one JSON document) into the canonical model."""

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
    flatten_result,
    load_document,
    parse_json_arguments,
    require_entries,
)

_LOGGER = logging.getLogger(__name__)

_MODEL_NAMES = (
    (re.compile(r"^devstral-(\d+)$"), r"Devstral \1"),
    (re.compile(r"^mistral-vibe-cli-latest$"), "Mistral Vibe CLI"),
    (re.compile(r"^devstral-small-latest$"), "Devstral Small"),
    (re.compile(r"^devstral$"), "Devstral"),
)


def format_mistral_model(model_id: str) -> str | None:
    if not model_id:
        return None
    for pattern, replacement in _MODEL_NAMES:
        if pattern.match(model_id):
            return pattern.sub(replacement, model_id)
    return model_id


def _resolve_model(agent_config: Any) -> str | None:
    """The active model, by configured alias or name."""
    if not isinstance(agent_config, dict) or not agent_config.get("active_model"):
        return None
    active = str(agent_config["active_model"])
    for model in agent_config.get("models") or []:
        if isinstance(model, dict) and active in (model.get("alias"), model.get("name")):
            return model.get("alias") or model.get("name") or active
    return active


def _session_usage(stats: Any) -> TokenUsage | None:
    if not isinstance(stats, dict):
        return None
    return TokenUsage(
        input_tokens=as_int(stats.get("session_prompt_tokens")),
        output_tokens=as_int(stats.get("session_completion_tokens")),
    )


def _dicts(value: Any) -> list[dict]:
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


class MistralVibeProvider:
    """Mistral Vibe sessions (``~/.vibe/logs/session/*.json``)."""

    name = "mistral-vibe"
    display_name = "Mistral Vibe"

    def signals(self, sample: DetectionSample) -> list[Signal]:
        document = sample.document
        if not isinstance(document, dict) or not isinstance(document.get("messages"), list):
            return []
        metadata = document.get("metadata")
        if not isinstance(metadata, dict) or not metadata.get("session_id") or not metadata.get("start_time"):
            return []
        messages = [message for message in document["messages"] if isinstance(message, dict)]
        if any(message.get("role") == "assistant" or isinstance(message.get("tool_calls"), list)
               for message in messages):
            return [Signal("vibe-session", UNIQUE)]
        return [Signal("session-metadata", CHARACTERISTIC)]

    def parse(self, raw: str) -> ParsedTranscript:
        session = load_document(raw, self.name)
        metadata = session.get("metadata") if isinstance(session.get("metadata"), dict) else {}
        raw_messages = session.get("messages") if isinstance(session.get("messages"), list) else []

        session_id = str(metadata.get("session_id") or "")
        start_time = metadata.get("start_time") or ""
        environment = metadata.get("environment") if isinstance(metadata.get("environment"), dict) else {}
        cwd = environment.get("working_directory") or None
        git_branch = metadata.get("git_branch") or None
        model = _resolve_model(metadata.get("agent_config"))

        lines: list[TranscriptLine] = []
        for index, entry in enumerate(raw_messages):
            if not isinstance(entry, dict):
                continue
            role = entry.get("role")
            if role not in ("user", "assistant"):
                continue

            calls = _dicts(entry.get("tool_calls"))
            results = _dicts(entry.get("tool_call_results"))

            blocks: list[ContentBlock] = []
            content = entry.get("content")
            if isinstance(content, str) and content.strip():
                blocks.append(TextBlock(text=content))
            arguments: list[dict] = []
            for call in calls:
                function = call.get("function") if isinstance(call.get("function"), dict) else {}
                args = parse_json_arguments(function.get("arguments"))
                arguments.append(args)
                blocks.append(ToolUseBlock(
                    id=str(call.get("id", "")),
                    name=str(function.get("name") or "unknown"),
                    input=args,
                ))
            for result in results:
                is_error = result.get("is_error")
                blocks.append(ToolResultBlock(
                    tool_use_id=str(result.get("tool_call_id", "")),
                    content=flatten_result(result.get("content")),
                    is_error=is_error if isinstance(is_error, bool) else None,
                ))
            if not blocks:
                continue

            # Messages carry no timestamp of their own
            timestamp = (
                (arguments[0].get("timestamp") if arguments else None)
                or (results[0].get("timestamp") if results else None)
                or start_time
            )
            lines.append(TranscriptLine(
                kind=LineKind(role),
                uuid=f"{session_id}-{index}",
                timestamp=str(timestamp),
                parent_uuid=None,
                message=Message(
                    role=role,
                    content=blocks,
                    model=model if role == "assistant" else None,
                ),
                cwd=cwd,
                git_branch=git_branch,
                session_id=session_id or None,
            ))

        return build_transcript(
            require_entries(lines, self.name),
            session_id=session_id,
            cwd=cwd,
            usage=_session_usage(metadata.get("stats")),
            extra_timestamps=(start_time, metadata.get("end_time")),
        )

    def format_model_name(self, model_id: str) -> str | None:
        return format_mistral_model(model_id)
