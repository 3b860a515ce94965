"""Provider protocol and the helpers every adapter shares."""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from . import (
    CommandBlock,
    CommandKind,
    ContentBlock,
    InstructionsBlock,
    ParsedTranscript,
    ShellStreamBlock,
    StreamKind,
    TextBlock,
    UnparseableFileError,
)

_LOGGER = logging.getLogger(__name__)

# Detection signal weights: provider-unique fields outrank field
# combinations, which outrank generic chat-shaped fields.
UNIQUE = 100
CHARACTERISTIC = 50
GENERIC = 10

_LINE_NAMESPACE = uuid.UUID("6f2b8d64-5a0c-4c1e-9a57-3b8f2e0d9c41")


@dataclass(frozen=True)
class Signal:
    name: str
    weight: int


@dataclass
class DetectionSample:
    """Raw content pre-parsed once so each provider can look for its signals."""

    document: Any = None  # whole payload as one JSON value, if it is one
    records: list[dict] = field(default_factory=list)  # leading JSONL objects


@runtime_checkable
class TranscriptProvider(Protocol):
    """Protocol for per-source transcript adapters."""

    name: str
    display_name: str

    def signals(self, sample: DetectionSample) -> list[Signal]:
        """Return the format signals found in ``sample`` (empty if none)."""
        ...

    def parse(self, raw: str) -> ParsedTranscript:
        """Normalize ``raw`` into a ParsedTranscript. Raises UnparseableFileError."""
        ...

    def format_model_name(self, model_id: str) -> str | None:
        """Friendly model name, the id itself if unknown, None to ignore the model."""
        ...


# --- Record folding ---


@dataclass
class RecordFold:
    """Outcome of folding a payload into JSON object records."""

    records: list[dict] = field(default_factory=list)
    skipped: int = 0

    def require(self, provider: str) -> list[dict]:
        """Return the records, or raise when none could be recovered."""
        if not self.records:
            reason = "no parseable lines" if self.skipped else "empty input"
            raise UnparseableFileError(provider, reason)
        if self.skipped:
            _LOGGER.warning("%s: skipped %d malformed line(s)", provider, self.skipped)
        return self.records


def fold_jsonl(raw: str, limit: int | None = None) -> RecordFold:
    """Parse JSONL, keeping JSON objects and counting lines that are not."""
    fold = RecordFold()
    for line in raw.splitlines():
        if limit is not None and len(fold.records) >= limit:
            break
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as exc:
            _LOGGER.debug("Skipping malformed JSON line: %s", exc)
            fold.skipped += 1
            continue
        if isinstance(entry, dict):
            fold.records.append(entry)
        else:
            fold.skipped += 1
    return fold


def require_entries(lines: list, provider: str) -> list:
    """Return ``lines``, or raise when no record held a transcript entry."""
    if not lines:
        raise UnparseableFileError(provider, "no transcript entries")
    return lines


def load_document(raw: str, provider: str) -> dict:
    """Parse a single-document JSON session, raising if it is not an object."""
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise UnparseableFileError(provider, f"invalid JSON document ({exc})") from exc
    if not isinstance(document, dict):
        raise UnparseableFileError(provider, "expected a JSON object")
    return document


def parse_json_arguments(arguments: Any) -> dict:
    """Tool-call arguments as a dict; unparseable strings are kept under ``raw``."""
    if isinstance(arguments, dict):
        return arguments
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, str):
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            return {"raw": arguments}
        return parsed if isinstance(parsed, dict) else {"value": parsed}
    return {"value": arguments}


def flatten_result(value: Any) -> str:
    """Flatten a tool result of any shape into one string, fragments in order."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = [flatten_result(item) for item in value]
        return "\n".join(part for part in parts if part)
    if isinstance(value, dict):
        for key in ("text", "output", "content"):
            if isinstance(value.get(key), (str, list)):
                return flatten_result(value[key])
        if value.get("type") == "image":
            return "[image]"
    return json.dumps(value, indent=2, ensure_ascii=False)


def stable_line_id(provider: str, session_id: str, index: int) -> str:
    """Deterministic id for sources that do not give their entries one."""
    return str(uuid.uuid5(_LINE_NAMESPACE, f"{provider}:{session_id}:{index}"))


def as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


# --- Tagged text inside user messages ---

_COMMAND_START = re.compile(r"^<command-(name|message|args)>")
_COMMAND_TAGS = (
    (CommandKind.NAME, re.compile(r"<command-name>([^<]+)</command-name>")),
    (CommandKind.MESSAGE, re.compile(r"<command-message>([^<]+)</command-message>")),
    (CommandKind.ARGS, re.compile(r"<command-args>([^<]*)</command-args>")),
)
_BASH_START = re.compile(r"^<bash-(input|stdout|stderr)>")
_BASH_TAGS = (
    (StreamKind.INPUT, re.compile(r"<bash-input>([^<]+)</bash-input>")),
    (StreamKind.STDOUT, re.compile(r"<bash-stdout>([\s\S]*?)</bash-stdout>")),
    (StreamKind.STDERR, re.compile(r"<bash-stderr>([\s\S]*?)</bash-stderr>")),
)
_USER_INSTRUCTIONS = re.compile(r"<user_instructions>([\s\S]*?)</user_instructions>")


def parse_command_tags(text: str) -> list[ContentBlock] | None:
    """Split ``<command-*>`` tagged text into CommandBlocks, or None if untagged."""
    if not _COMMAND_START.match(text.strip()):
        return None
    blocks: list[ContentBlock] = []
    for kind, pattern in _COMMAND_TAGS:
        match = pattern.search(text)
        if match:
            blocks.append(CommandBlock(kind=kind, text=match.group(1)))
    return blocks or None


def parse_bash_tags(text: str) -> list[ContentBlock] | None:
    """Split ``<bash-*>`` tagged text into ShellStreamBlocks, or None if untagged."""
    if not _BASH_START.match(text.strip()):
        return None
    blocks: list[ContentBlock] = []
    for kind, pattern in _BASH_TAGS:
        match = pattern.search(text)
        if not match:
            continue
        # Empty stderr carries nothing worth showing
        if kind is StreamKind.STDERR and not match.group(1).strip():
            continue
        blocks.append(ShellStreamBlock(kind=kind, text=match.group(1)))
    return blocks or None


def parse_user_instructions(text: str) -> list[ContentBlock]:
    """Split text around a ``<user_instructions>`` section.

    >>> parse_user_instructions("Before\\n<user_instructions>\\nRules\\n</user_instructions>\\nAfter")
    [TextBlock(text='Before'), InstructionsBlock(text='Rules'), TextBlock(text='After')]
    """
    match = _USER_INSTRUCTIONS.search(text)
    if not match:
        return [TextBlock(text=text)]

    blocks: list[ContentBlock] = []
    before = text[:match.start()].strip()
    if before:
        blocks.append(TextBlock(text=before))
    blocks.append(InstructionsBlock(text=match.group(1).strip()))
    after = text[match.end():].strip()
    if after:
        blocks.append(TextBlock(text=after))
    return blocks
