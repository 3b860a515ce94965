"""Canonical transcript model shared by every provider adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class TranscriptError(Exception):
    """Base class for transcript parsing errors."""


class UnparseableFileError(TranscriptError):
    """No line or entry of the input could be recovered."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"Failed to parse transcript with {provider} provider: {reason}")
        self.provider = provider
        self.reason = reason


# --- Content blocks ---


class CommandKind(Enum):
    NAME = "name"
    MESSAGE = "message"
    ARGS = "args"


class StreamKind(Enum):
    INPUT = "input"
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ThinkingBlock:
    thinking: str


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)  # opaque tool arguments


@dataclass(frozen=True)
class ToolResultMetadata:
    exit_code: int | None = None
    duration_seconds: float | None = None


@dataclass(frozen=True)
class ToolResultBlock:
    tool_use_id: str
    content: str  # always flattened to a string by the adapter
    is_error: bool | None = None
    metadata: ToolResultMetadata | None = None


@dataclass(frozen=True)
class CommandBlock:
    """Slash command tags (``<command-name>`` and friends)."""

    kind: CommandKind
    text: str


@dataclass(frozen=True)
class ShellStreamBlock:
    """User-run shell input and output (``<bash-stdout>`` and friends)."""

    kind: StreamKind
    text: str


@dataclass(frozen=True)
class InstructionsBlock:
    text: str


ContentBlock = Union[
    TextBlock,
    ThinkingBlock,
    ToolUseBlock,
    ToolResultBlock,
    CommandBlock,
    ShellStreamBlock,
    InstructionsBlock,
]


def block_to_dict(block: ContentBlock) -> dict[str, Any]:
    """Serialize a block using the wire tags the transcript viewer expects."""
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ThinkingBlock):
        return {"type": "thinking", "thinking": block.thinking}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, ToolResultBlock):
        data: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
        }
        if block.is_error is not None:
            data["is_error"] = block.is_error
        if block.metadata is not None:
            meta = {}
            if block.metadata.exit_code is not None:
                meta["exit_code"] = block.metadata.exit_code
            if block.metadata.duration_seconds is not None:
                meta["duration_seconds"] = block.metadata.duration_seconds
            data["metadata"] = meta
        return data
    if isinstance(block, CommandBlock):
        return {"type": f"command-{block.kind.value}", "text": block.text}
    if isinstance(block, ShellStreamBlock):
        return {"type": f"bash-{block.kind.value}", "text": block.text}
    if isinstance(block, InstructionsBlock):
        return {"type": "user-instructions", "text": block.text}
    raise TypeError(f"Not a content block: {type(block).__name__}")


def block_from_dict(data: dict[str, Any]) -> ContentBlock:
    """Inverse of :func:`block_to_dict`. Raises ValueError for unknown tags."""
    block_type = data.get("type", "")
    if block_type == "text":
        return TextBlock(text=data["text"])
    if block_type == "thinking":
        return ThinkingBlock(thinking=data["thinking"])
    if block_type == "tool_use":
        return ToolUseBlock(id=data["id"], name=data["name"], input=data.get("input") or {})
    if block_type == "tool_result":
        meta = data.get("metadata")
        return ToolResultBlock(
            tool_use_id=data["tool_use_id"],
            content=data["content"],
            is_error=data.get("is_error"),
            metadata=ToolResultMetadata(
                exit_code=meta.get("exit_code"),
                duration_seconds=meta.get("duration_seconds"),
            ) if isinstance(meta, dict) else None,
        )
    if block_type.startswith("command-"):
        return CommandBlock(kind=CommandKind(block_type[len("command-"):]), text=data["text"])
    if block_type.startswith("bash-"):
        return ShellStreamBlock(kind=StreamKind(block_type[len("bash-"):]), text=data["text"])
    if block_type == "user-instructions":
        return InstructionsBlock(text=data["text"])
    raise ValueError(f"Unknown content block type: {block_type!r}")


# --- Messages and lines ---


class LineKind(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SNAPSHOT = "file-history-snapshot"


@dataclass
class TokenUsage:
    """Provider-reported token usage. None means the source did not report it."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_read_tokens: int | None = None
    cache_write_tokens: int | None = None
    thinking_tokens: int | None = None
    tool_tokens: int | None = None

    def is_empty(self) -> bool:
        return all(value is None for value in vars(self).values())


@dataclass
class Message:
    """Normalized message from any agent transcript."""

    role: str  # "user" or "assistant"
    content: str | list[ContentBlock]
    model: str | None = None  # assistant messages only

    def blocks(self) -> list[ContentBlock]:
        """Content as blocks; plain string content becomes a single TextBlock."""
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)] if self.content else []
        return list(self.content)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role,
            "content": self.content if isinstance(self.content, str)
            else [block_to_dict(block) for block in self.content],
        }
        if self.model:
            data["model"] = self.model
        return data


@dataclass
class TranscriptLine:
    kind: LineKind
    uuid: str
    timestamp: str  # ISO 8601
    parent_uuid: str | None = None
    message: Message | None = None
    cwd: str | None = None
    git_branch: str | None = None
    session_id: str | None = None
    tool_result_raw: Any = None  # provider's structured tool result, kept verbatim
    usage: TokenUsage | None = None

    @property
    def role(self) -> str | None:
        return self.message.role if self.message else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind.value,
            "uuid": self.uuid,
            "timestamp": self.timestamp,
            "parentUuid": self.parent_uuid,
        }
        if self.message is not None:
            data["message"] = self.message.to_dict()
        if self.cwd:
            data["cwd"] = self.cwd
        if self.git_branch:
            data["gitBranch"] = self.git_branch
        if self.session_id:
            data["sessionId"] = self.session_id
        if self.tool_result_raw is not None:
            data["toolUseResult"] = self.tool_result_raw
        return data


@dataclass
class TranscriptBounds:
    first_timestamp: str
    last_timestamp: str
    message_count: int


@dataclass
class ParsedTranscript:
    messages: list[TranscriptLine]
    session_id: str
    metadata: TranscriptBounds
    cwd: str | None = None
    usage: TokenUsage | None = None  # session totals, for sources without per-message usage

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "messages": [line.to_dict() for line in self.messages],
            "sessionId": self.session_id,
            "metadata": {
                "firstTimestamp": self.metadata.first_timestamp,
                "lastTimestamp": self.metadata.last_timestamp,
                "messageCount": self.metadata.message_count,
            },
        }
        if self.cwd:
            data["cwd"] = self.cwd
        return data


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_transcript(
    lines: list[TranscriptLine],
    session_id: str = "",
    cwd: str | None = None,
    usage: TokenUsage | None = None,
    extra_timestamps: tuple[str | None, ...] = (),
) -> ParsedTranscript:
    """Assemble a ParsedTranscript, deriving bounds from the observed timestamps.

    ``extra_timestamps`` lets session-level start/end times widen the bounds
    (single-document sources record them separately from messages).
    """
    earliest: tuple[datetime, str] | None = None
    latest: tuple[datetime, str] | None = None
    for raw in (*(line.timestamp for line in lines), *extra_timestamps):
        parsed = parse_timestamp(raw)
        if parsed is None:
            continue
        if earliest is None or parsed < earliest[0]:
            earliest = (parsed, raw)
        if latest is None or parsed > latest[0]:
            latest = (parsed, raw)

    return ParsedTranscript(
        messages=lines,
        session_id=session_id,
        cwd=cwd or None,
        usage=usage if usage is not None and not usage.is_empty() else None,
        metadata=TranscriptBounds(
            first_timestamp=earliest[1] if earliest else "",
            last_timestamp=latest[1] if latest else "",
            message_count=len(lines),
        ),
    )
