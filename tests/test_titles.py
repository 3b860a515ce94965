"""Tests for title heuristics."""

from datetime import date, datetime

import pytest

from ai_sessions.titles import default_title, is_machine_identifier, resolve_title


class TestIsMachineIdentifier:
    @pytest.mark.parametrize("title", [
        None,
        "",
        "   ",
        "8c7df8a4-37a0-4731-939e-3e64abe0dc09",
        "rollout-2025-10-11T10-35-38-0199d2c1-6c3e-7a10-9d5e-5b1f8e4a2c01",
        "2025-10-11T10-35-38",
        "session 2025-10-11 10:35",
        "20251011_103538",
    ])
    def test_machine_titles(self, title):
        assert is_machine_identifier(title) is True

    @pytest.mark.parametrize("title", [
        "Fix authentication bug",
        "2025-10-18",
        "Release v1.2.3",
        "Refactor 20 files",
    ])
    def test_human_titles(self, title):
        assert is_machine_identifier(title) is False


class TestDefaultTitle:
    def test_uses_display_name(self):
        assert default_title("claude-code", date(2025, 10, 16)) == "Claude Code - October 16, 2025"
        assert default_title("gemini-cli", datetime(2025, 1, 5, 12, 30)) == "Gemini CLI - January 5, 2025"

    def test_unknown_provider_uses_name(self):
        assert default_title("cursor", date(2025, 3, 1)) == "cursor - March 1, 2025"


class TestResolveTitle:
    def test_keeps_human_title(self):
        assert resolve_title("  Fix login  ", "codex", date(2025, 10, 16)) == "Fix login"

    def test_replaces_machine_title(self):
        title = resolve_title("8c7df8a4-37a0-4731-939e-3e64abe0dc09", "codex", date(2025, 10, 16))
        assert title == "Codex - October 16, 2025"
