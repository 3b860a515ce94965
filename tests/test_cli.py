"""Tests for the ais command line."""

import json
import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from ai_sessions.cli import cli

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    for name in ("AIS_DEFAULT_PROVIDER", "AIS_DETECT_LINES", "AIS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def _run(*args):
    return CliRunner().invoke(cli, [str(arg) for arg in args])


class TestProviders:
    def test_lists_all(self):
        result = _run("providers")
        assert result.exit_code == 0
        names = [line.split()[0] for line in result.output.splitlines()]
        assert names == ["claude-code", "codex", "copilot-cli", "gemini-cli", "mistral-vibe"]
        assert "Gemini CLI" in result.output


class TestDetect:
    def test_recognized(self):
        result = _run("detect", FIXTURES / "codex-transcript.jsonl")
        assert result.exit_code == 0
        assert result.output.startswith("codex (high confidence: ")

    def test_unrecognized(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("shopping list\n")
        result = _run("detect", notes)
        assert result.exit_code == 0
        assert result.output.strip() == "Unrecognized format (falling back to claude-code)"

    def test_json(self):
        result = _run("detect", FIXTURES / "copilot-transcript.jsonl", "--json")
        data = json.loads(result.output)
        assert data["provider"] == "copilot-cli"
        assert data["recognized"] is True

    def test_missing_file(self, tmp_path):
        result = _run("detect", tmp_path / "nope.jsonl")
        assert result.exit_code == 2


class TestParse:
    def test_listing(self):
        result = _run("parse", FIXTURES / "claude-transcript.jsonl")
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert (
            "Session a1b2c3d4-0000-4000-8000-000000000001: 10 line(s), "
            "2025-10-16T09:00:00.000Z to 2025-10-16T09:02:30.000Z"
        ) in lines
        assert "  [file-history-snapshot]" in lines
        assert "[Bash: npm run build]" in result.output

    def test_json(self):
        result = _run("parse", FIXTURES / "gemini-session.json", "--json")
        data = json.loads(result.output)
        assert data["cwd"] == "/home/dev/webapp"
        assert data["metadata"]["messageCount"] == len(data["messages"])

    def test_provider_override(self):
        result = _run("parse", FIXTURES / "codex-legacy.jsonl", "--provider", "codex")
        assert result.exit_code == 0
        assert result.output.startswith("Session test-session-789:")

    def test_unparseable(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("plain text")
        result = _run("parse", notes, "--provider", "gemini-cli")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unknown_provider_rejected(self):
        result = _run("parse", FIXTURES / "codex-legacy.jsonl", "--provider", "cursor")
        assert result.exit_code == 2


class TestStats:
    def test_stats(self):
        result = _run("stats", FIXTURES / "mistral-session.json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["userMessageCount"] >= 1
        assert data["tokenCounts"]["totalTokens"] == 4600


class TestPatch:
    def test_patch(self):
        result = _run("patch", FIXTURES / "apply-patch.txt")
        assert result.exit_code == 0
        [changed] = json.loads(result.output)
        assert changed["filePath"] == "src/app.py"
        assert 'print("hello")' in changed["newString"]

    def test_no_patch(self, tmp_path):
        empty = tmp_path / "empty.txt"
        empty.write_text("nothing here")
        result = _run("patch", empty)
        assert result.exit_code == 1
        assert "No Add File or Update File block found" in result.output


class TestTitle:
    def test_human_title_kept(self):
        assert _run("title", "  Fix login redirect ").output.strip() == "Fix login redirect"

    def test_machine_title_replaced(self):
        result = _run("title", "rollout-2025-10-18T09-00-00", "--provider", "codex", "--date", "2025-10-18")
        assert result.output.strip() == "Codex - October 18, 2025"

    def test_missing_title(self):
        result = _run("title", "--date", "2025-01-05")
        assert result.output.strip() == "Claude Code - January 5, 2025"


class TestConfig:
    def test_show(self, tmp_path):
        result = _run("config")
        assert result.exit_code == 0
        assert f"{tmp_path / 'ai-sessions' / 'env'} (missing)" in result.output
        assert "Default provider:  claude-code" in result.output

    def test_init(self, tmp_path):
        env_file = tmp_path / "ai-sessions" / "env"
        result = _run("config", "--init")
        assert f"Created {env_file}" in result.output
        assert env_file.exists()
        assert "already exists" in _run("config", "--init").output

    def test_env_file_values_used(self, tmp_path):
        (tmp_path / "ai-sessions").mkdir()
        (tmp_path / "ai-sessions" / "env").write_text("AIS_DETECT_LINES=3\n")
        try:
            result = _run("config")
        finally:
            os.environ.pop("AIS_DETECT_LINES", None)
        assert "Detect lines:      3" in result.output
