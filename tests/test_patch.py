"""Tests for apply_patch parsing."""

from pathlib import Path

from ai_sessions.patch import ParsedFile, parse_patch

FIXTURES = Path(__file__).parent / "fixtures"


class TestParsePatch:
    def test_add_file(self):
        patch = "*** Begin Patch\n*** Add File: test.txt\n+Hello World\n*** End Patch"
        assert parse_patch(patch) == [ParsedFile(file_path="test.txt", old_string="", new_string="Hello World")]

    def test_add_file_multiple_lines(self):
        patch = "*** Begin Patch\n*** Add File: a.py\n+import os\n+\n+print(os.getcwd())\n*** End Patch"
        assert parse_patch(patch)[0].new_string == "import os\n\nprint(os.getcwd())"

    def test_update_file(self):
        files = parse_patch((FIXTURES / "apply-patch.txt").read_text())
        assert files == [ParsedFile(
            file_path="src/app.py",
            old_string='def main():\n    print("hi")\n    return 0',
            new_string='def main():\n    print("hello")\n    return 0',
        )]

    def test_crlf_tolerated(self):
        patch = "*** Begin Patch\r\n*** Add File: test.txt\r\n+Hello\r\n*** End Patch\r\n"
        assert parse_patch(patch)[0].new_string == "Hello"

    def test_only_first_file_block(self):
        patch = (
            "*** Begin Patch\n"
            "*** Add File: one.txt\n+1\n"
            "*** Add File: two.txt\n+2\n"
            "*** End Patch"
        )
        files = parse_patch(patch)
        assert [f.file_path for f in files] == ["one.txt"]
        assert files[0].new_string == "1"

    def test_delete_block_passed_over(self):
        patch = (
            "*** Begin Patch\n"
            "*** Delete File: gone.txt\n"
            "*** Update File: kept.txt\n@@\n-old\n+new\n"
            "*** End Patch"
        )
        assert parse_patch(patch) == [ParsedFile(file_path="kept.txt", old_string="old", new_string="new")]

    def test_control_lines_ignored(self):
        patch = (
            "*** Begin Patch\n"
            "*** Update File: a.txt\n"
            "*** Move to: b.txt\n"
            "@@ section\n x\n-y\n+z\n"
            "*** End of File\n"
            "*** End Patch"
        )
        assert parse_patch(patch) == [ParsedFile(file_path="a.txt", old_string="x\ny", new_string="x\nz")]

    def test_to_dict_uses_camel_case(self):
        parsed = ParsedFile(file_path="a", old_string="", new_string="b")
        assert parsed.to_dict() == {"filePath": "a", "oldString": "", "newString": "b"}

    def test_malformed_input(self):
        assert parse_patch("not a valid patch") == []
        assert parse_patch("*** Begin Patch\n*** End Patch") == []
        assert parse_patch("*** Begin Patch\n*** Add File: \n+x\n*** End Patch") == []
        assert parse_patch(None) == []
