"""Tests for path display and project-hash helpers."""

import hashlib

import pytest

from ai_sessions.paths import infer_project_path, is_absolute, make_relative, project_hash


class TestMakeRelative:
    @pytest.mark.parametrize("path, cwd, expected", [
        ("/Users/dev/project/src/index.ts", "/Users/dev/project", "src/index.ts"),
        ("/Users/dev/project/src/components/Button.tsx", "/Users/dev/project", "src/components/Button.tsx"),
        ("/Users/dev/project/file.ts", "/Users/dev/project/", "file.ts"),
        ("/etc/hosts", "/Users/dev/project", "/etc/hosts"),
    ])
    def test_unix_paths(self, path, cwd, expected):
        assert make_relative(path, cwd) == expected

    @pytest.mark.parametrize("path, cwd, expected", [
        ("C:\\Users\\dev\\project\\src\\index.ts", "C:\\Users\\dev\\project", "src/index.ts"),
        ("C:/Users/dev/project/src/index.ts", "C:/Users/dev/project", "src/index.ts"),
        ("C:\\Users\\dev\\project\\src\\index.ts", "C:/Users/dev/project", "src/index.ts"),
        ("C:/Users/dev/project/src/index.ts", "C:\\Users\\dev\\project", "src/index.ts"),
        ("C:\\project\\file.ts", "C:\\project\\", "file.ts"),
        ("c:\\project\\file.ts", "C:\\project", "file.ts"),
        ("D:\\other\\file.ts", "C:\\Users\\dev\\project", "D:\\other\\file.ts"),
    ])
    def test_windows_paths(self, path, cwd, expected):
        assert make_relative(path, cwd) == expected

    @pytest.mark.parametrize("path", ["src/index.ts", ".\\src\\index.ts", "src\\index.ts"])
    def test_relative_paths_unchanged(self, path):
        assert make_relative(path, "C:\\project") == path

    def test_no_cwd(self):
        assert make_relative("/Users/dev/project/src/index.ts") == "/Users/dev/project/src/index.ts"
        assert make_relative("/Users/dev/project/src/index.ts", "") == "/Users/dev/project/src/index.ts"

    def test_path_equal_to_cwd(self):
        assert make_relative("/Users/dev/project", "/Users/dev/project") == "/Users/dev/project"

    def test_no_partial_segment_match(self):
        path = "/Users/dev/project-backup/file.ts"
        assert make_relative(path, "/Users/dev/project") == path


class TestIsAbsolute:
    def test_detects_absolute_paths(self):
        assert is_absolute("/tmp/x")
        assert is_absolute("C:\\x")
        assert is_absolute("d:/x")

    def test_rejects_relative_paths(self):
        assert not is_absolute("x/y")
        assert not is_absolute("C:relative")


class TestInferProjectPath:
    def test_finds_ancestor(self):
        target = hashlib.sha256(b"/home/dev/webapp").hexdigest()
        assert infer_project_path(target, ["/home/dev/webapp/src/theme.ts"]) == "/home/dev/webapp"

    def test_candidate_itself_can_match(self):
        target = project_hash("/srv/app")
        assert infer_project_path(target, ["/srv/app"]) == "/srv/app"

    def test_hash_compared_case_insensitively(self):
        target = project_hash("/srv/app").upper()
        assert infer_project_path(target, ["/srv/app/main.py"]) == "/srv/app"

    def test_windows_candidates(self):
        target = project_hash("C:\\work\\repo")
        assert infer_project_path(target, ["C:\\work\\repo\\src\\main.rs"]) == "C:\\work\\repo"

    def test_relative_candidates_skipped(self):
        target = project_hash("src")
        assert infer_project_path(target, ["src/main.py"]) is None

    def test_empty_inputs(self):
        assert infer_project_path("", ["/srv/app"]) is None
        assert infer_project_path(project_hash("/srv/app"), []) is None

    def test_no_match(self):
        assert infer_project_path(project_hash("/elsewhere"), ["/srv/app/main.py"]) is None
