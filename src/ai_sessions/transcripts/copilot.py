"""Parse GitHub Copilot CLI event logs into the canonical model."""

from __future__ import annotations

import logging
import re

from . import (
    ContentBlock,
    LineKind,
    Message,
    ParsedTranscript,
    TextBlock,
    ToolUseBlock,
    TranscriptLine,
    build_transcript,
)
from .base import (
    UNIQUE,
    DetectionSample,
    Signal,
    fold_jsonl,
    parse_json_arguments,
    require_entries,
    stable_line_id,
)

_LOGGER = logging.getLogger(__name__)

SESSION_START = "session.start"
SESSION_INFO = "session.info"
MODEL_CHANGE = "session.model_change"
TRUNCATION = "session.truncation"
USER_MESSAGE = "user.message"
ASSISTANT_MESSAGE = "assistant.message"

# Prefix of the divider line emitted when the session switches model
MODEL_CHANGE_MARKER = "__MODEL_CHANGE__"

_FOLDER_TRUST = re.compile(r"Folder (.+) has been added to trusted folders")
_HIDDEN_TOOLS = {"report_intent"}


class CopilotCliProvider:
    """GitHub Copilot CLI sessions (``~/.copilot/session-state/*.jsonl``)."""

    name = "copilot-cli"
    display_name = "Copilot CLI"

    def signals(self, sample: DetectionSample) -> list[Signal]:
        found: list[Signal] = []
        for record in sample.records:
            event_type = record.get("type")
            data = record.get("data") if isinstance(record.get("data"), dict) else {}
            if event_type == SESSION_START and (
                data.get("producer") == "copilot-agent" or "copilotVersion" in data
            ):
                found.append(Signal("copilot-session-start", UNIQUE))
            elif event_type in (MODEL_CHANGE, TRUNCATION):
                found.append(Signal(event_type, UNIQUE))
            elif event_type == SESSION_INFO and data.get("infoType") == "mcp":
                found.append(Signal("mcp-info", UNIQUE))
        return found

    def parse(self, raw: str) -> ParsedTranscript:
        records = fold_jsonl(raw).require(self.name)

        lines: list[TranscriptLine] = []
        session_id = ""
        cwd = ""
        model = ""
        event_timestamps: list[str] = []

        for index, event in enumerate(records):
            event_type = event.get("type")
            data = event.get("data") if isinstance(event.get("data"), dict) else {}
            timestamp = event.get("timestamp") if isinstance(event.get("timestamp"), str) else ""
            event_timestamps.append(timestamp)

            if event_type == SESSION_START:
                session_id = str(data.get("sessionId") or event.get("id") or "")
                continue

            if event_type == SESSION_INFO:
                if data.get("infoType") == "folder_trust":
                    match = _FOLDER_TRUST.search(str(data.get("message", "")))
                    if match:
                        cwd = match.group(1)
                continue

            role: str
            content: str | list[ContentBlock]
            if event_type == MODEL_CHANGE:
                new_model = data.get("newModel")
                if not new_model:
                    continue
                model = str(new_model)
                role = "assistant"
                content = [TextBlock(text=f"{MODEL_CHANGE_MARKER}{model}")]
            elif event_type == USER_MESSAGE:
                role = "user"
                content = data.get("content") if isinstance(data.get("content"), str) else ""
            elif event_type == ASSISTANT_MESSAGE:
                role = "assistant"
                content = self._assistant_blocks(data)
                if not content:
                    continue
            else:
                _LOGGER.debug("Skipping Copilot event %r", event_type)
                continue

            lines.append(TranscriptLine(
                kind=LineKind(role),
                uuid=str(event.get("id") or stable_line_id(self.name, session_id, index)),
                timestamp=timestamp,
                parent_uuid=event.get("parentId") if isinstance(event.get("parentId"), str) else None,
                message=Message(
                    role=role,
                    content=content,
                    model=model if role == "assistant" and model and event_type != MODEL_CHANGE else None,
                ),
                cwd=cwd or None,
                session_id=session_id or None,
            ))

        if not session_id and lines:
            session_id = lines[0].uuid

        return build_transcript(
            require_entries(lines, self.name),
            session_id=session_id,
            cwd=cwd,
            extra_timestamps=tuple(event_timestamps),
        )

    @staticmethod
    def _assistant_blocks(data: dict) -> list[ContentBlock]:
        blocks: list[ContentBlock] = []
        text = data.get("content")
        if isinstance(text, str) and text.strip():
            blocks.append(TextBlock(text=text))

        requests = data.get("toolRequests")
        for request in requests if isinstance(requests, list) else []:
            if not isinstance(request, dict):
                continue
            name = request.get("name")
            if not name or name in _HIDDEN_TOOLS:
                continue
            blocks.append(ToolUseBlock(
                id=str(request.get("toolCallId", "")),
                name=str(name),
                input=parse_json_arguments(request.get("arguments")),
            ))
        return blocks

    def format_model_name(self, model_id: str) -> str | None:
        return model_id or None
