"""Aggregate statistics for a parsed transcript."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .transcripts import ParsedTranscript, TokenUsage, ToolUseBlock
from .transcripts.base import TranscriptProvider

_LOGGER = logging.getLogger(__name__)

# Providers whose cache counters are cumulative per request, not per message
_CUMULATIVE_CACHE = {"claude-code"}


@dataclass
class ModelStat:
    model: str
    count: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {"model": self.model, "count": self.count, "percentage": self.percentage}


@dataclass
class TokenCounts:
    """Token totals. Optional fields are None when no message reported them."""

    input_tokens: int
    output_tokens: int
    cache_read_tokens: int | None = None
    cache_write_tokens: int | None = None
    thinking_tokens: int | None = None
    tool_tokens: int | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
        }
        optional = {
            "cacheReadTokens": self.cache_read_tokens,
            "cacheWriteTokens": self.cache_write_tokens,
            "thinkingTokens": self.thinking_tokens,
            "toolTokens": self.tool_tokens,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data


@dataclass
class TranscriptMetadata:
    cwd: str | None = None
    user_message_count: int = 0
    assistant_message_count: int = 0
    tool_call_count: int = 0
    model_stats: list[ModelStat] = field(default_factory=list)
    token_counts: TokenCounts | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "userMessageCount": self.user_message_count,
            "assistantMessageCount": self.assistant_message_count,
            "toolCallCount": self.tool_call_count,
            "modelStats": [stat.to_dict() for stat in self.model_stats],
        }
        if self.cwd:
            data["cwd"] = self.cwd
        if self.token_counts is not None:
            data["tokenCounts"] = self.token_counts.to_dict()
        return data


def _display_model(model: str, provider: TranscriptProvider | None) -> str | None:
    """Friendly model name, or None for synthetic placeholder models."""
    if "synthetic" in model:
        return None
    if provider is None:
        return model
    return provider.format_model_name(model)


def model_stats(parsed: ParsedTranscript, provider: TranscriptProvider | None = None) -> list[ModelStat]:
    """Share of model-tagged assistant messages per model."""
    counts: Counter[str] = Counter()
    for line in parsed.messages:
        message = line.message
        if message is None or message.role != "assistant" or not message.model:
            continue
        name = _display_model(message.model, provider)
        if name:
            counts[name] += 1

    total = sum(counts.values())
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        ModelStat(model=name, count=count, percentage=round(100 * count / total, 1))
        for name, count in ordered
    ]


def _add(total: int | None, value: int | None) -> int | None:
    if value is None:
        return total
    return value if total is None else total + value


def _peak(total: int | None, value: int | None) -> int | None:
    if value is None:
        return total
    return value if total is None else max(total, value)


def token_counts(parsed: ParsedTranscript, provider_name: str | None = None) -> TokenCounts | None:
    """Sum reported usage; transcript-level totals win over per-line usage."""
    if parsed.usage is not None:
        usages = [parsed.usage]
    else:
        usages = [line.usage for line in parsed.messages if line.usage is not None]
    if not usages:
        return None

    cache = _peak if provider_name in _CUMULATIVE_CACHE else _add
    total = TokenUsage()
    for usage in usages:
        total.input_tokens = _add(total.input_tokens, usage.input_tokens)
        total.output_tokens = _add(total.output_tokens, usage.output_tokens)
        total.cache_read_tokens = cache(total.cache_read_tokens, usage.cache_read_tokens)
        total.cache_write_tokens = cache(total.cache_write_tokens, usage.cache_write_tokens)
        total.thinking_tokens = _add(total.thinking_tokens, usage.thinking_tokens)
        total.tool_tokens = _add(total.tool_tokens, usage.tool_tokens)

    if not total.input_tokens and not total.output_tokens:
        return None

    return TokenCounts(
        input_tokens=total.input_tokens or 0,
        output_tokens=total.output_tokens or 0,
        cache_read_tokens=total.cache_read_tokens or None,
        cache_write_tokens=total.cache_write_tokens or None,
        thinking_tokens=total.thinking_tokens or None,
        tool_tokens=total.tool_tokens or None,
    )


def calculate_metadata(
    parsed: ParsedTranscript,
    raw: str | bytes | None = None,
    provider: str | None = None,
) -> TranscriptMetadata:
    """Counts, model mix and token totals for ``parsed``.

    Args:
        parsed: Output of :func:`ai_sessions.transcripts.registry.parse_transcript`.
        raw: The payload ``parsed`` came from. Only used to detect the
            provider when ``provider`` is not given.
        provider: Provider name, for model-name formatting and cache
            aggregation rules.
    """
    from .transcripts.registry import decode, get_provider

    if provider is None and raw is not None:
        from .transcripts.detect import detect_provider

        provider = detect_provider(decode(raw)).provider
    adapter = get_provider(provider)
    if provider and adapter is None:
        _LOGGER.warning("Unknown provider %r, model names left unformatted", provider)

    user_count = assistant_count = tool_calls = 0
    for line in parsed.messages:
        if line.message is None:
            continue
        if line.message.role == "user":
            user_count += 1
        elif line.message.role == "assistant":
            assistant_count += 1
            tool_calls += sum(isinstance(block, ToolUseBlock) for block in line.message.blocks())

    return TranscriptMetadata(
        cwd=parsed.cwd,
        user_message_count=user_count,
        assistant_message_count=assistant_count,
        tool_call_count=tool_calls,
        model_stats=model_stats(parsed, adapter),
        token_counts=token_counts(parsed, provider),
    )
