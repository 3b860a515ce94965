"""Tests for transcript statistics."""

import json
from pathlib import Path

import pytest

from ai_sessions.metadata import TokenCounts, calculate_metadata, token_counts
from ai_sessions.transcripts import (
    LineKind,
    Message,
    TextBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
    TranscriptLine,
    build_transcript,
)
from ai_sessions.transcripts.registry import parse_transcript

FIXTURES = Path(__file__).parent / "fixtures"


def _stats(name, provider=None):
    raw = (FIXTURES / name).read_text()
    return calculate_metadata(parse_transcript(raw), raw=raw, provider=provider)


def _line(role, content, model=None, index=0):
    return TranscriptLine(
        kind=LineKind(role),
        uuid=f"line-{index}",
        timestamp=f"2025-01-01T00:00:0{index}Z",
        message=Message(role=role, content=content, model=model),
    )


class TestCalculateMetadata:
    def test_claude_counts(self):
        meta = _stats("claude-transcript.jsonl", "claude-code")
        assert meta.user_message_count == 5
        assert meta.assistant_message_count == 4
        assert meta.tool_call_count == 2
        assert meta.cwd == "/home/dev/webapp"

    def test_claude_model_mix_skips_synthetic(self):
        meta = _stats("claude-transcript.jsonl", "claude-code")
        assert [(s.model, s.count, s.percentage) for s in meta.model_stats] == [
            ("Claude Sonnet 4.5", 2, 66.7),
            ("Claude Opus 4", 1, 33.3),
        ]

    def test_claude_cache_counters_take_peak(self):
        counts = _stats("claude-transcript.jsonl", "claude-code").token_counts
        assert counts.input_tokens == 300
        assert counts.output_tokens == 150
        assert counts.total_tokens == 450
        assert counts.cache_read_tokens == 20
        assert counts.cache_write_tokens == 10

    def test_codex_session_totals(self):
        meta = _stats("codex-transcript.jsonl", "codex")
        assert meta.token_counts == TokenCounts(
            input_tokens=2000, output_tokens=420, cache_read_tokens=1500, thinking_tokens=64
        )
        assert [s.model for s in meta.model_stats] == ["GPT-5 Codex"]

    def test_gemini_per_message_sum(self):
        counts = _stats("gemini-session.json", "gemini-cli").token_counts
        assert counts == TokenCounts(
            input_tokens=1500,
            output_tokens=300,
            cache_read_tokens=300,
            thinking_tokens=50,
            tool_tokens=10,
        )

    def test_gemini_tokens_on_empty_message_counted(self):
        session = json.loads((FIXTURES / "gemini-session.json").read_text())
        session["messages"].append({"id": "g-005", "type": "gemini", "content": "", "tokens": {"input": 40, "output": 2}})
        parsed = parse_transcript(json.dumps(session), provider_hint="gemini-cli")
        counts = calculate_metadata(parsed, provider="gemini-cli").token_counts
        assert (counts.input_tokens, counts.output_tokens) == (1540, 302)

    def test_mistral(self):
        meta = _stats("mistral-session.json", "mistral-vibe")
        assert meta.token_counts.total_tokens == 4600
        assert meta.model_stats[0].model == "Devstral 2"

    def test_provider_detected_from_raw(self):
        meta = _stats("gemini-session.json")
        assert meta.model_stats[0].model == "Gemini 2.5 Pro"

    def test_unknown_provider_leaves_names(self, caplog):
        raw = (FIXTURES / "gemini-session.json").read_text()
        with caplog.at_level("WARNING"):
            meta = calculate_metadata(parse_transcript(raw), provider="cursor")
        assert meta.model_stats[0].model == "gemini-2.5-pro"
        assert "Unknown provider" in caplog.text

    def test_percentages_sum_to_hundred(self):
        lines = [
            _line("assistant", "a", model="m1", index=0),
            _line("assistant", "b", model="m2", index=1),
            _line("assistant", "c", model="m3", index=2),
        ]
        meta = calculate_metadata(build_transcript(lines, session_id="s"))
        assert sum(s.percentage for s in meta.model_stats) == pytest.approx(100, abs=0.2)

    def test_tool_results_not_counted_as_calls(self):
        call = ToolUseBlock(id="t1", name="Read", input={"file_path": "a"})
        lines = [_line("assistant", [TextBlock(text="ok"), call], index=0)]
        before = calculate_metadata(build_transcript(lines, session_id="s")).tool_call_count
        lines.append(_line("user", [ToolResultBlock(tool_use_id="t1", content="x")], index=1))
        after = calculate_metadata(build_transcript(lines, session_id="s")).tool_call_count
        assert before == after == 1

    def test_idempotent(self):
        raw = (FIXTURES / "claude-transcript.jsonl").read_text()
        parsed = parse_transcript(raw)
        first = calculate_metadata(parsed, provider="claude-code")
        assert calculate_metadata(parsed, provider="claude-code") == first

    def test_to_dict_omits_missing(self):
        data = _stats("mistral-session.json", "mistral-vibe").to_dict()
        assert data["tokenCounts"] == {"inputTokens": 4000, "outputTokens": 600, "totalTokens": 4600}


class TestTokenCounts:
    def test_no_usage(self):
        parsed = build_transcript([_line("user", "hi")], session_id="s")
        assert token_counts(parsed) is None
        assert "tokenCounts" not in calculate_metadata(parsed).to_dict()

    def test_zero_usage_is_none(self):
        parsed = build_transcript([], session_id="s", usage=TokenUsage(input_tokens=0, output_tokens=0))
        assert token_counts(parsed) is None
