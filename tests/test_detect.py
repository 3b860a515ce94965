"""Tests for transcript format detection."""

import json
from pathlib import Path

import pytest

from ai_sessions.config import Config
from ai_sessions.transcripts import detect
from ai_sessions.transcripts.detect import Confidence, detect_provider

FIXTURES = Path(__file__).parent / "fixtures"


class TestDetectProvider:
    @pytest.mark.parametrize("fixture, provider", [
        ("claude-transcript.jsonl", "claude-code"),
        ("codex-transcript.jsonl", "codex"),
        ("codex-legacy.jsonl", "codex"),
        ("copilot-transcript.jsonl", "copilot-cli"),
        ("gemini-session.json", "gemini-cli"),
        ("mistral-session.json", "mistral-vibe"),
    ])
    def test_fixtures(self, fixture, provider):
        result = detect_provider((FIXTURES / fixture).read_text())
        assert result.provider == provider
        assert result.recognized is True
        assert result.confidence is Confidence.HIGH

    def test_unrecognized_falls_back(self):
        result = detect_provider("just some text")
        assert result.provider == "claude-code"
        assert result.confidence is Confidence.LOW
        assert result.recognized is False
        assert result.signals == []

    def test_fallback_uses_configured_default(self, tmp_path):
        config = Config(env_file=tmp_path / "env", default_provider="codex")
        assert detect_provider("", config).provider == "codex"

    def test_unknown_default_provider_ignored(self, tmp_path):
        config = Config(env_file=tmp_path / "env", default_provider="nope")
        assert detect_provider("", config).provider == "claude-code"

    def test_medium_confidence(self):
        raw = json.dumps({"parentUuid": None, "type": "user"})
        result = detect_provider(raw)
        assert result.provider == "claude-code"
        assert result.confidence is Confidence.MEDIUM

    def test_sample_limited_to_configured_lines(self, tmp_path):
        lines = [json.dumps({"type": "noise", "n": i}) for i in range(5)]
        lines.append(json.dumps({"type": "session.truncation", "data": {}}))
        raw = "\n".join(lines)
        config = Config(env_file=tmp_path / "env", detect_sample_lines=3)
        assert detect_provider(raw, config).recognized is False
        assert detect_provider(raw).provider == "copilot-cli"

    def test_failing_provider_scored_zero(self, monkeypatch, caplog):
        class Broken:
            name = "broken"
            display_name = "Broken"

            def signals(self, sample):
                raise RuntimeError("boom")

        monkeypatch.setattr(detect, "PROVIDERS", (Broken(), *detect.PROVIDERS))
        raw = (FIXTURES / "codex-transcript.jsonl").read_text()
        with caplog.at_level("WARNING"):
            result = detect_provider(raw)
        assert result.provider == "codex"
        assert "broken detection failed" in caplog.text

    def test_to_dict(self):
        result = detect_provider((FIXTURES / "gemini-session.json").read_text())
        data = result.to_dict()
        assert data["provider"] == "gemini-cli"
        assert data["confidence"] == "high"
        assert data["score"] >= 100
